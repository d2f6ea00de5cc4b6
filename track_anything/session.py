"""
Session lifecycle

Owns the signed-in identity used to scope backend queries. Switching
accounts or signing out clears the local cache before anyone can read it;
listeners (DataSync) react to identity changes, e.g. by preloading.
"""

import logging
from typing import Awaitable, Callable, Optional

from track_anything.monitoring import set_user_context
from track_anything.storage import LocalCache

logger = logging.getLogger(__name__)

SessionListener = Callable[[Optional[str], Optional[str]], Awaitable[None]]


class Session:
    """Current user identity plus session-changed notifications"""

    def __init__(self, cache: LocalCache):
        self._cache = cache
        self._user_id: Optional[str] = None
        self._access_token: Optional[str] = None
        self._listeners: list[SessionListener] = []

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    @property
    def is_signed_in(self) -> bool:
        return self._user_id is not None

    def subscribe(self, listener: SessionListener) -> None:
        """Register ``async listener(previous_user_id, current_user_id)``"""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: SessionListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    async def sign_in(self, user_id: str, access_token: Optional[str] = None) -> None:
        """
        Adopt a signed-in identity.

        Signing in as the user already held only refreshes the token.
        Signing in as a different user clears the local cache first.
        """
        previous = self._user_id
        self._access_token = access_token

        if previous == user_id:
            logger.debug(f"Refreshed access token for user {user_id}")
            return

        if previous is not None:
            logger.info(f"User changed from {previous} to {user_id}, clearing local cache")
            await self._cache.clear_all()

        self._user_id = user_id
        set_user_context(user_id)
        logger.info(f"Signed in as {user_id}")
        await self._notify(previous, user_id)

    async def sign_out(self) -> None:
        """Clear the local cache and forget the identity"""
        previous = self._user_id
        await self._cache.clear_all()
        self._user_id = None
        self._access_token = None
        set_user_context(None)
        logger.info(f"Signed out{f' user {previous}' if previous else ''}")
        if previous is not None:
            await self._notify(previous, None)

    async def _notify(self, previous: Optional[str], current: Optional[str]) -> None:
        for listener in list(self._listeners):
            try:
                await listener(previous, current)
            except Exception as e:
                logger.error(f"Session listener {listener!r} failed: {e}", exc_info=True)
