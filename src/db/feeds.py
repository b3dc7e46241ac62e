"""
Live catalog collections.

A feed pushes full snapshots (lists of untyped records) to its subscribers
whenever the collection changes. subscribe() hands back a Subscription whose
unsubscribe() detaches the listener; nothing else needs to be torn down by
the caller.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from db import crud
from utils.logger import get_logger
from utils.timers import Clock, PeriodicAction

Record = Dict[str, Any]
SnapshotListener = Callable[[List[Record]], None]
ErrorListener = Callable[[Exception], None]

_logger = get_logger(__name__)


class Subscription:
    """Cancellation handle returned by subscribe(). unsubscribe() is idempotent."""

    def __init__(self, release: Optional[Callable[[], None]] = None):
        self._release = release
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._release is not None:
            self._release()


class ChannelFeed:
    """
    In-process live collection. publish() delivers a snapshot to every
    subscriber; fail() delivers a transport error.
    """

    def __init__(self, name: str):
        self.name = name
        self._listeners: List[tuple] = []
        self._last: Optional[List[Record]] = None

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    def subscribe(
        self, on_snapshot: SnapshotListener, on_error: Optional[ErrorListener] = None
    ) -> Subscription:
        entry = (on_snapshot, on_error)
        self._listeners.append(entry)
        first = len(self._listeners) == 1

        def release():
            if entry in self._listeners:
                self._listeners.remove(entry)
            if not self._listeners:
                self._on_last_unsubscribe()

        if first:
            self._on_first_subscribe()
        return Subscription(release)

    def publish(self, records: List[Record]) -> None:
        self._last = list(records)
        for on_snapshot, _ in list(self._listeners):
            on_snapshot(list(records))

    def fail(self, error: Exception) -> None:
        for _, on_error in list(self._listeners):
            if on_error is not None:
                on_error(error)

    async def fetch(self) -> List[Record]:
        """One-shot read of the whole collection."""
        return list(self._last or [])

    def _on_first_subscribe(self) -> None:
        pass

    def _on_last_unsubscribe(self) -> None:
        pass


class SqliteCollectionFeed(ChannelFeed):
    """
    Live view over one catalog table of the local store.

    The first subscriber triggers an initial load; after that the table is
    polled every `poll_interval` seconds and a snapshot is published only when
    it differs from the previous one.
    """

    def __init__(self, table: str, clock: Clock, poll_interval: float = 5.0):
        super().__init__(table)
        self.table = table
        self._poller = PeriodicAction(clock, poll_interval, self._schedule_reload)
        self._task: Optional[asyncio.Task] = None

    async def fetch(self) -> List[Record]:
        return await crud.list_collection(self.table)

    async def reload(self) -> None:
        try:
            records = await self.fetch()
            if records != self._last:
                _logger.debug(f"{self.table}: publishing {len(records)} records")
                self.publish(records)
        except Exception as e:
            _logger.error(f"Error reading {self.table}: {e}")
            self.fail(e)

    def _schedule_reload(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.get_running_loop().create_task(self.reload())

    def _on_first_subscribe(self) -> None:
        self._last = None
        self._schedule_reload()
        self._poller.start()

    def _on_last_unsubscribe(self) -> None:
        self._poller.stop()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
