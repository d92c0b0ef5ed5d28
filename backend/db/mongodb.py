import logging
import asyncio
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
import certifi
from core.config import settings

logger = logging.getLogger(__name__)

_mongo_client: Optional[AsyncIOMotorClient] = None
_mongo_db: Optional[AsyncIOMotorDatabase] = None

def get_mongo_db() -> Optional[AsyncIOMotorDatabase]:
    global _mongo_client, _mongo_db
    if not settings.USE_MONGO:
        return None
    if _mongo_db is not None:
        return _mongo_db
    if not settings.MONGO_URI:
        logger.warning("USE_MONGO=true but MONGO_URI is not set")
        return None
    client_kwargs = {
        "serverSelectionTimeoutMS": 30000,
        "connectTimeoutMS": 20000,
        "socketTimeoutMS": 20000,
    }
    # Atlas / TLS endpoints get an explicit CA bundle
    if "mongodb.net" in settings.MONGO_URI or settings.MONGO_URI.startswith("mongodb+srv://"):
        client_kwargs.update({
            "tls": True,
            "tlsCAFile": certifi.where(),
            "retryWrites": True,
        })
    if settings.MONGO_URI.startswith("mongodb+srv://"):
        client_kwargs["directConnection"] = False
    _mongo_client = AsyncIOMotorClient(settings.MONGO_URI, **client_kwargs)
    _mongo_db = _mongo_client[settings.MONGO_DB]
    return _mongo_db

def close_mongo_client():
    global _mongo_client, _mongo_db
    if _mongo_client is not None:
        _mongo_client.close()
    _mongo_client = None
    _mongo_db = None

async def init_mongo_indexes():
    db = get_mongo_db()
    if db is None:
        return
    # Retry ping and index creation to allow primary election / networking delays
    for attempt in range(1, 6):
        try:
            await db.command({"ping": 1})
            # Users
            await db.users.create_index("email", unique=True, name="u_email")
            # Sessions; Mongo removes expired rows on its own as well
            await db.sessions.create_index("token", unique=True, name="u_session_token")
            await db.sessions.create_index("user_id", name="i_session_user")
            await db.sessions.create_index("expires_at", expireAfterSeconds=0, name="ttl_session_expires")
            # Internships
            await db.internships.create_index([("created_at", -1)], name="i_created_desc")
            await db.internships.create_index("deadline", name="i_deadline")
            await db.internships.create_index("posted_by", name="i_posted_by")
            return
        except Exception as e:
            wait_s = min(2 ** attempt, 15)
            logger.warning(f"Mongo not ready (attempt {attempt}): {e}; retrying in {wait_s}s")
            await asyncio.sleep(wait_s)
    logger.error("Mongo index initialization failed after retries")
