"""
Snapshot subscriptions over database queries.

A SnapshotSubscription re-runs a query on an interval and yields the full
result set whenever it differs from the last one delivered. The first
snapshot is always delivered. Iteration never ends on its own; the consumer
stops it with close() (or by leaving the async-for loop and letting the
generator be closed). Iterating again after close() starts a fresh stream.
"""
import asyncio
from typing import Any, AsyncIterator, Callable, List, Optional

from sqlalchemy.orm import Session, sessionmaker

from src.lib.db import SessionLocal
from src.lib.logging import get_logger
from src.lib.settings import settings

logger = get_logger(__name__)

Snapshot = List[Any]


class SnapshotSubscription:
    """Lazy, restartable stream of result-set snapshots."""

    def __init__(
        self,
        load: Callable[[Session], Snapshot],
        *,
        name: str = "subscription",
        session_factory: Optional[sessionmaker] = None,
        interval: Optional[float] = None,
    ):
        """
        Args:
            load: Returns the current snapshot as plain, comparable values
                (e.g. serialised dicts), given a fresh session
            name: Label used in logs
            session_factory: Session factory (defaults to SessionLocal)
            interval: Seconds between polls (defaults to settings.subscription_poll_seconds)
        """
        self.load = load
        self.name = name
        self.session_factory = session_factory or SessionLocal
        self.interval = interval if interval is not None else settings.subscription_poll_seconds
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        self._closed.set()

    def snapshot(self) -> Snapshot:
        session = self.session_factory()
        try:
            return self.load(session)
        finally:
            session.close()

    async def _wait(self) -> None:
        try:
            await asyncio.wait_for(self._closed.wait(), timeout=self.interval)
        except asyncio.TimeoutError:
            pass

    async def __aiter__(self) -> AsyncIterator[Snapshot]:
        self._closed = asyncio.Event()
        logger.info("Subscription opened", extra={"subscription": self.name})
        last: Optional[Snapshot] = None
        try:
            while not self.closed:
                current = await asyncio.to_thread(self.snapshot)
                if current != last:
                    last = current
                    yield current
                await self._wait()
        finally:
            logger.info("Subscription closed", extra={"subscription": self.name})
