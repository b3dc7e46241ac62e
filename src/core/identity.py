from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, List, Optional

from db.feeds import Subscription
from utils.logger import get_logger

_logger = get_logger(__name__)

AUTH_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str = ""
    anonymous: bool = False

    @property
    def kind(self) -> str:
        return "anonymous" if self.anonymous else "authenticated"


class IdentityProvider:
    """Holds the signed-in operator and tells listeners when it changes."""

    def __init__(self, current: Optional[Identity] = None):
        self.current = current
        self._listeners: List[Callable[[Optional[Identity]], None]] = []

    def subscribe(self, listener: Callable[[Optional[Identity]], None]) -> Subscription:
        self._listeners.append(listener)

        def release():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(release)

    def set(self, identity: Optional[Identity]) -> None:
        self.current = identity
        _logger.info(f"Auth state changed: {identity.uid if identity else 'No user'}")
        for listener in list(self._listeners):
            listener(identity)

    def clear(self) -> None:
        self.set(None)


async def wait_for_identity(
    provider: IdentityProvider, timeout: float = AUTH_TIMEOUT_SECONDS
) -> Optional[Identity]:
    """
    The current identity, waiting up to `timeout` seconds for one to appear.
    Returns None on timeout.
    """
    if provider.current is not None:
        return provider.current

    _logger.info("Waiting for authentication...")
    future: asyncio.Future = asyncio.get_running_loop().create_future()

    def listener(identity: Optional[Identity]) -> None:
        if identity is not None and not future.done():
            future.set_result(identity)

    sub = provider.subscribe(listener)
    try:
        return await asyncio.wait_for(future, timeout)
    except asyncio.TimeoutError:
        _logger.warning(f"No identity after {timeout}s")
        return None
    finally:
        sub.unsubscribe()
