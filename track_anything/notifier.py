"""
Change notifier for cache updates

Single in-process signal ("data updated") with no payload. Repositories emit
after every cache write; views subscribe and re-query the repositories.
"""

import logging
from typing import Callable

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class ChangeNotifier:
    """
    Publish/subscribe bus with one event kind.

    Features:
    - Synchronous fan-out: emit() returns after every current listener ran
    - Error isolation (one listener error doesn't affect others)
    - Listeners may unsubscribe themselves while being notified
    """

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        """
        Subscribe to data-updated notifications.

        Args:
            listener: Zero-argument callable
        """
        if listener not in self._listeners:
            self._listeners.append(listener)
            logger.debug(f"Subscribed listener ({len(self._listeners)} total)")

    def unsubscribe(self, listener: Listener) -> None:
        """Remove a listener; unknown listeners are ignored"""
        try:
            self._listeners.remove(listener)
            logger.debug(f"Unsubscribed listener ({len(self._listeners)} left)")
        except ValueError:
            # Listener not subscribed
            pass

    def emit(self) -> None:
        """Notify every currently subscribed listener"""
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Error in data-updated listener {listener!r}: {e}", exc_info=True)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
