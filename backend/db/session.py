from sqlalchemy.orm import declarative_base
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine, AsyncSession
from sqlalchemy.pool import NullPool
from sqlalchemy import event
from contextlib import asynccontextmanager
from core.config import settings
import logging
from typing import Optional, Tuple

Base = declarative_base()
logger = logging.getLogger("internboard")

ASYNC_DRIVERS = {
    "mysql+pymysql://": "mysql+aiomysql://",
    "mysql://": "mysql+aiomysql://",
    "sqlite://": "sqlite+aiosqlite://",
}


def _to_async_database_url(url: str) -> str:
    for sync_prefix, async_prefix in ASYNC_DRIVERS.items():
        if url and url.startswith(sync_prefix):
            return async_prefix + url[len(sync_prefix):]
    return url


def _engine_kwargs(url: str) -> dict:
    # SQLite connections must not be pooled across event loops
    if url.startswith("sqlite"):
        return {"poolclass": NullPool}
    return {
        "pool_pre_ping": bool(settings.DB_PRE_PING),
        "pool_recycle": int(settings.DB_POOL_RECYCLE),
        "pool_size": int(settings.DB_POOL_SIZE),
        "max_overflow": int(settings.DB_MAX_OVERFLOW),
        "pool_timeout": int(settings.DB_POOL_TIMEOUT),
    }


def _build_engine() -> Tuple[Optional[AsyncEngine], Optional[async_sessionmaker]]:
    """SQL engine and session factory, or (None, None) when MongoDB is the store."""
    if settings.USE_MONGO:
        return None, None
    url = _to_async_database_url(settings.DATABASE_URL)
    sql_engine = create_async_engine(url, future=True, echo=False, **_engine_kwargs(url))

    @event.listens_for(sql_engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        logger.debug("DB connect: id=%s", id(connection_record))

    @event.listens_for(sql_engine.sync_engine, "close")
    def _on_close(dbapi_connection, connection_record):
        logger.debug("DB close: id=%s", id(connection_record))

    factory = async_sessionmaker(bind=sql_engine, class_=AsyncSession, expire_on_commit=False)
    return sql_engine, factory


engine, SessionLocal = _build_engine()


async def get_db_session():
    """FastAPI dependency: one AsyncSession per request, None in Mongo mode."""
    if SessionLocal is None:
        yield None
        return
    async with SessionLocal() as db:
        try:
            yield db
        except Exception:
            await db.rollback()
            raise


@asynccontextmanager
async def get_or_use_session(db: Optional[AsyncSession]):
    """Yield provided AsyncSession without closing it, or create one if None."""
    if SessionLocal is None or db is not None:
        yield db
        return
    async with SessionLocal() as new_db:
        try:
            yield new_db
        except Exception:
            await new_db.rollback()
            raise
