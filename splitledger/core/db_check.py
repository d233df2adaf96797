import asyncio
import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from splitledger.core.errors import DataAccessError

logger = logging.getLogger(__name__)


async def wait_for_db(engine: AsyncEngine, retries: int = 5, delay: float = 2.0):
    for i in range(retries):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database connected")
            return
        except (SQLAlchemyError, OSError) as e:
            logger.warning(
                "Database not ready | [ %d/%d ] %s -> retrying...", i + 1, retries, e
            )
            if i + 1 < retries:
                await asyncio.sleep(delay)

    raise DataAccessError("Database unreachable after retries")
