"""
service/cache.py

Service Catalog Cache
Keeps the unfiltered service catalog for a bounded time so listing pages do
not hit the database on every request.

- One slot holding the catalog and the time it was fetched
- Concurrent callers on a cold slot share a single in-flight fetch
- invalidate() clears the slot; a fetch started before it is discarded
- A failed fetch yields an empty list and leaves the slot empty
- Optional Redis mirror so several worker processes share one catalog; a
  generation counter in Redis carries invalidations between processes
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

import redis.asyncio as redis
from pydantic import TypeAdapter

from servicewala.core.events import SERVICES_CHANGED, EventBus
from servicewala.service.schemas import ServiceRead

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300

Loader = Callable[[], Awaitable[list[ServiceRead]]]

_catalog_adapter = TypeAdapter(list[ServiceRead])


class ServiceCatalogCache:
    """Time-bounded, invalidatable cache of the full active service catalog."""

    def __init__(
        self,
        loader: Loader,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        redis_client: Any = None,
        redis_key: str = "cache:servicewala:catalog",
    ) -> None:
        self.loader = loader
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.redis = redis_client
        self.redis_key = redis_key
        self.generation_key = f"{redis_key}:generation"

        self._services: list[ServiceRead] | None = None
        self._fetched_at: float | None = None
        self._inflight: asyncio.Task[list[ServiceRead]] | None = None
        self._generation = 0
        self._shared_generation: int | None = None
        self._lock = asyncio.Lock()

    # ---------------------------------------------------
    # Wiring
    # ---------------------------------------------------
    def subscribe(self, events: EventBus) -> None:
        """Invalidates the cache whenever services change."""
        events.subscribe(SERVICES_CHANGED, self._on_services_changed)

    async def _on_services_changed(self, payload: dict[str, Any]) -> None:
        logger.debug(f"[CACHE] Services changed: {payload}")
        await self.invalidate()

    # ---------------------------------------------------
    # Public API
    # ---------------------------------------------------
    def is_fresh(self) -> bool:
        return (
            self._services is not None
            and self._fetched_at is not None
            and self.clock() - self._fetched_at < self.ttl_seconds
        )

    async def get(self) -> list[ServiceRead]:
        """Returns the cached catalog, fetching it when the slot is empty or stale."""
        async with self._lock:
            await self._follow_shared_generation()
            if self.is_fresh():
                logger.debug("[CACHE] Catalog served from memory")
                return list(self._services)

            mirrored = await self._read_mirror()
            if mirrored is not None:
                self._store(mirrored)
                return list(mirrored)

            if self._inflight is None:
                logger.info("[CACHE] Catalog stale, fetching")
                self._inflight = asyncio.create_task(
                    self._fetch(self._generation, self._shared_generation)
                )
            task = self._inflight

        return list(await task)

    async def invalidate(self) -> None:
        """
        Clears the slot. Any fetch already running will not repopulate it.
        With Redis, the shared generation is bumped so other processes drop
        their slots on their next read.
        """
        self._drop_slot()
        logger.info("[CACHE] Catalog invalidated")

        if self.redis is not None:
            try:
                self._shared_generation = int(await self.redis.incr(self.generation_key))
                await self.redis.delete(self.redis_key)
            except redis.RedisError as e:
                logger.warning(f"[CACHE] Could not clear Redis mirror: {e}")

    # ---------------------------------------------------
    # Internals
    # ---------------------------------------------------
    def _store(self, services: list[ServiceRead]) -> None:
        self._services = services
        self._fetched_at = self.clock()

    def _drop_slot(self) -> None:
        self._generation += 1
        self._services = None
        self._fetched_at = None
        self._inflight = None

    async def _read_shared_generation(self) -> int | None:
        if self.redis is None:
            return None
        try:
            raw = await self.redis.get(self.generation_key)
        except redis.RedisError as e:
            logger.warning(f"[CACHE] Redis generation read failed: {e}")
            return None
        return int(raw) if raw else 0

    async def _follow_shared_generation(self) -> None:
        """Drops the local slot when another process invalidated the catalog."""
        shared = await self._read_shared_generation()
        if shared is None:
            return
        if self._shared_generation is not None and shared != self._shared_generation:
            logger.info("[CACHE] Catalog invalidated by another process")
            self._drop_slot()
        self._shared_generation = shared

    async def _fetch(self, generation: int, shared_generation: int | None) -> list[ServiceRead]:
        try:
            services = await self.loader()
        except Exception as e:
            logger.error(f"[CACHE] Catalog fetch failed: {e}")
            services = None

        async with self._lock:
            if self._inflight is asyncio.current_task():
                self._inflight = None
            if services is None:
                return []
            if generation != self._generation:
                logger.debug("[CACHE] Discarding catalog fetched before invalidation")
                return services
            self._store(services)

        if shared_generation == await self._read_shared_generation():
            await self._write_mirror(services)
        return services

    async def _read_mirror(self) -> list[ServiceRead] | None:
        if self.redis is None:
            return None
        try:
            raw = await self.redis.get(self.redis_key)
        except redis.RedisError as e:
            logger.warning(f"[CACHE] Redis read failed: {e}")
            return None
        if not raw:
            return None
        try:
            return _catalog_adapter.validate_json(raw)
        except ValueError as e:
            logger.warning(f"[CACHE] Ignoring malformed Redis catalog: {e}")
            return None

    async def _write_mirror(self, services: list[ServiceRead]) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.set(
                self.redis_key, _catalog_adapter.dump_json(services), ex=int(self.ttl_seconds)
            )
        except redis.RedisError as e:
            logger.warning(f"[CACHE] Redis write failed: {e}")
