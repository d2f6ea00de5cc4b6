"""Reconciliation helpers shared by the repositories"""
from typing import Iterable, Sequence, TypeVar

from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)


def merge_by_id(existing: Iterable[ModelT], incoming: Iterable[ModelT]) -> list[ModelT]:
    """
    Union two collections keyed by id; incoming items win.

    Never removes anything: an item missing from ``incoming`` keeps its
    cached copy. Order is existing order followed by new ids.
    """
    merged: dict[str, ModelT] = {item.id: item for item in existing}
    for item in incoming:
        merged[item.id] = item
    return list(merged.values())


def replace_by_id(items: Sequence[ModelT], replacement: ModelT) -> list[ModelT]:
    """Swap in ``replacement`` where the id matches; unknown ids are appended"""
    replaced = False
    result = []
    for item in items:
        if item.id == replacement.id:
            result.append(replacement)
            replaced = True
        else:
            result.append(item)
    if not replaced:
        result.append(replacement)
    return result


def remove_by_id(items: Sequence[ModelT], id: str) -> list[ModelT]:
    return [item for item in items if item.id != id]


def sort_newest_first(items: Iterable[ModelT]) -> list[ModelT]:
    """Sort by created_at descending"""
    return sorted(items, key=lambda item: item.created_at, reverse=True)


def sort_by_position(items: Iterable[ModelT]) -> list[ModelT]:
    """Sort by position ascending; ties keep creation order"""
    return sorted(items, key=lambda item: (item.position, item.created_at))
