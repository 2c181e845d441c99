import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from vidtube.db.models import Base
from vidtube.db.session import engine

logger = logging.getLogger(__name__)


async def init_models(db_engine: AsyncEngine) -> None:
    """Create account, video, subscription and watch-history tables."""

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Created tables: %s", ", ".join(sorted(Base.metadata.tables)))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init_models(engine))
