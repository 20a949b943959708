"""
Per-request operation context and relation loaders.

GraphQL resolves sibling fields concurrently, but an AsyncSession must not
run two statements at once. Every storage call made for a request goes
through `RequestContext.db_lock`.

Nested `items` / `bookings` fields are served by RelationLoader: list
operations prime it with the parent ids they returned, and the first nested
lookup fetches children for all pending parents in a single query.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from booking_api.core.config import Settings
from booking_api.core.logging import get_logger
from booking_api.db.session import STORAGE_FAILURES, rollback_session, storage_error
from booking_api.schemas.caller import CallerIdentity
from booking_api.services.booking_service import (
    fetch_bookings_for_bookables,
    fetch_items_for_bookings,
)

logger = get_logger(__name__)

BatchFetch = Callable[[AsyncSession, list[int]], Awaitable[dict[int, list[Any]]]]


class RelationLoader:
    """Batching, caching loader for one parent -> children relationship."""

    def __init__(
        self,
        name: str,
        fetch: BatchFetch,
        db: AsyncSession,
        lock: asyncio.Lock,
        on_children: Optional[Callable[[list[Any]], None]] = None,
    ):
        self.name = name
        self._fetch = fetch
        self._on_children = on_children
        self._db = db
        self._lock = lock
        self._cache: dict[int, list[Any]] = {}
        self._pending: set[int] = set()
        self.batches = 0

    def prime(self, parent_ids: Iterable[int]) -> None:
        self._pending.update(pid for pid in parent_ids if pid not in self._cache)

    def invalidate(self) -> None:
        """Forget fetched children. Primed parents stay queued."""
        self._cache.clear()

    async def load(self, parent_id: int) -> list[Any]:
        if parent_id in self._cache:
            return self._cache[parent_id]

        async with self._lock:
            # Another resolver may have fetched this parent while we waited
            if parent_id not in self._cache:
                ids = sorted(self._pending | {parent_id})
                try:
                    children = await self._fetch(self._db, ids)
                except STORAGE_FAILURES as e:
                    await rollback_session(self._db, self.name)
                    raise storage_error(e, self.name) from e
                for pid in ids:
                    self._cache[pid] = list(children.get(pid, []))
                self._pending.clear()
                if self._on_children is not None:
                    self._on_children([child for batch in children.values() for child in batch])
                self.batches += 1
                logger.debug("relation_batch_loaded", relation=self.name, parents=len(ids))
        return self._cache[parent_id]


@dataclass
class RequestContext:
    db: AsyncSession
    settings: Settings
    caller: Optional[CallerIdentity] = None
    db_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    items_loader: RelationLoader = field(init=False)
    bookings_loader: RelationLoader = field(init=False)

    def __post_init__(self):
        self.items_loader = RelationLoader(
            "booking.items",
            fetch_items_for_bookings,
            self.db,
            self.db_lock,
            on_children=self.prime_bookables,
        )
        self.bookings_loader = RelationLoader(
            "bookable.bookings",
            fetch_bookings_for_bookables,
            self.db,
            self.db_lock,
            on_children=self.prime_bookings,
        )

    def prime_bookings(self, bookings: Iterable[Any]) -> None:
        self.items_loader.prime(b.id for b in bookings)

    def prime_bookables(self, bookables: Iterable[Any]) -> None:
        self.bookings_loader.prime(b.id for b in bookables)

    def invalidate_relations(self) -> None:
        self.items_loader.invalidate()
        self.bookings_loader.invalidate()
