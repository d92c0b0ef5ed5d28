from db.session import Base, engine
from db.models.user import User  # noqa: F401
from db.models.internship import Internship  # noqa: F401
from db.models.login_session import LoginSession  # noqa: F401
import logging
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

async def initialize_database():
    """Create tables for the SQL backend."""
    try:
        assert isinstance(engine, AsyncEngine)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Error creating database tables: {e}")
        raise e

async def drop_database():
    assert isinstance(engine, AsyncEngine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
