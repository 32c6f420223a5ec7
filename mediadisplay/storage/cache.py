"""Keyed cache with expiry, stored alongside the accounts."""

import json
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional

from mediadisplay.models.schema import utcnow
from mediadisplay.storage.database import SessionFactory, session_scope
from mediadisplay.storage.repository import CacheRepository
from mediadisplay.utils.config import CACHE_TTL
from mediadisplay.utils.logging import get_logger

logger = get_logger(__name__)


def _always_store(value: Any) -> bool:
    return value is not None


class CacheStore:
    """
    JSON values cached in the database with a per-entry TTL.

    ``get_or_compute`` runs the computation only when the entry is missing
    or expired. Two callers missing the same entry at the same time both
    compute, the last one to finish is what stays cached.
    """

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self.session_factory = session_factory

    async def get(self, name: str) -> Optional[Any]:
        async with session_scope(self.session_factory) as session:
            entry = await CacheRepository.get(session, name)
            if entry is None:
                return None
            return json.loads(entry.data)

    async def set(self, name: str, value: Any, ttl: int = CACHE_TTL) -> None:
        expires = utcnow() + timedelta(seconds=ttl)
        async with session_scope(self.session_factory) as session:
            await CacheRepository.set(session, name, json.dumps(value), expires)

    async def get_or_compute(
        self,
        name: str,
        compute: Callable[[], Awaitable[Any]],
        ttl: int = CACHE_TTL,
        should_store: Callable[[Any], bool] = _always_store,
    ) -> Any:
        """
        Return the cached value, or compute, store and return it.

        Expired entries are purged on every miss so keys that are never
        requested again (old paging links, replaced tokens) do not pile up.

        Args:
            name: Cache entry name
            compute: Coroutine function producing the value
            ttl: Seconds the computed value stays valid
            should_store: Predicate deciding whether a computed value is cached

        Returns:
            The cached or freshly computed value
        """
        cached = await self.get(name)
        if cached is not None:
            logger.debug(f"Cache hit: {name}")
            return cached

        await self.purge_expired()

        value = await compute()
        if should_store(value):
            await self.set(name, value, ttl)
        return value

    async def delete(self, name: Optional[str] = None) -> int:
        """Delete one entry, or everything when no name is given."""
        async with session_scope(self.session_factory) as session:
            return await CacheRepository.delete(session, name)

    async def purge_expired(self) -> int:
        async with session_scope(self.session_factory) as session:
            return await CacheRepository.purge_expired(session)
