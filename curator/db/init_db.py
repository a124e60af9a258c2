import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from curator.db.models import Base
from curator.db.session import engine

logger = logging.getLogger(__name__)


async def init_models(db_engine: AsyncEngine) -> None:
    """Create the ``collection_documents`` table when it does not exist yet."""

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Collection store ready", extra={"database": db_engine.url.render_as_string(hide_password=True)})


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init_models(engine))
