"""
servicewala/core/redis.py

Async Redis Client

Initializes the optional shared Redis client used to mirror the service
catalog across worker processes. When REDIS_ENABLED is false the client is
None and callers fall back to in-process state.
"""

import logging

import redis.asyncio as redis

from servicewala.core.config import settings

# ---------------------------------------------------
# Logger Configuration
# ---------------------------------------------------
logger = logging.getLogger(__name__)

# ---------------------------------------------------
# Redis Client Initialization
# ---------------------------------------------------
redis_client: redis.Redis | None = None  # type: ignore[type-arg]

if settings.REDIS_ENABLED:
    try:
        redis_client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            decode_responses=True,
        )
        logger.info(
            f"[REDIS ASYNC] Initialized async Redis client for {settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}"
        )
    except redis.RedisError as e:
        logger.error(f"[REDIS ASYNC] Initialization failed: {e}")
        redis_client = None
else:
    logger.info("[REDIS ASYNC] Redis disabled, catalog cache is process-local.")
