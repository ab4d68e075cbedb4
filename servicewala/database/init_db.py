"""
init_db.py

Creates all tables defined in the SQLAlchemy models and seeds the default
categories. Used for setting up the schema of a fresh database.
"""

import asyncio
import logging

from servicewala.core.logging import init_logging
from servicewala.database.base import Base
from servicewala.database import models  # noqa: F401  registers every table
from servicewala.database.seed import seed_default_categories
from servicewala.database.session import AsyncSessionLocal, engine

logger = logging.getLogger(__name__)


async def init_db() -> None:
    """
    Creates all database tables and inserts the default categories.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with AsyncSessionLocal() as db:
        await seed_default_categories(db)
    logger.info("[DB] Schema ready")


if __name__ == "__main__":
    init_logging()
    asyncio.run(init_db())
