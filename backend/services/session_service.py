"""Server-side login sessions.

The client only holds a signed cookie naming a session record; the record is
the source of truth, so logout and user removal take effect immediately.
"""
from datetime import datetime, timedelta
from typing import Optional, Tuple
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from core.config import settings
from core.exceptions import AppError, Unauthenticated, DependencyFailure
from core.security import generate_session_token, create_session_cookie, verify_session_cookie
from db.mongodb import get_mongo_db
from db.session import get_or_use_session
from db.models.login_session import LoginSession
from schemas.user_schema import SessionUser
from services.user_service import authenticate_user, get_user_by_id
from utils.db import safe_commit
from utils.logging_config import ACTIVITY_LOGGER_NAME
from utils.timing import timeit, utcnow
import logging

logger = logging.getLogger(__name__)
activity_logger = logging.getLogger(ACTIVITY_LOGGER_NAME)


async def create_session(user_id: str, email: str, db: AsyncSession = None, now: Optional[datetime] = None) -> str:
    """Persist a session for the user and return the cookie value."""
    now = now or utcnow()
    token = generate_session_token()
    expires_at = now + timedelta(minutes=settings.SESSION_EXPIRE_MINUTES)
    try:
        mongo = get_mongo_db()
        if mongo is not None:
            await mongo.sessions.insert_one({
                "token": token,
                "user_id": user_id,
                "email": email,
                "created_at": now,
                "expires_at": expires_at,
            })
        else:
            async with get_or_use_session(db) as _db:
                _db.add(LoginSession(token=token, user_id=user_id, email=email, created_at=now, expires_at=expires_at))
                await safe_commit(_db)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error creating session: {e}")
        raise DependencyFailure()
    return create_session_cookie(token, user_id, email, expires_at)


@timeit("login")
async def login(email: str, password: str, db: AsyncSession = None) -> Tuple[SessionUser, str]:
    user = await authenticate_user(email, password, db=db)
    cookie_value = await create_session(user.user_id, user.email, db=db)
    activity_logger.info(f"{user.email} logged in")
    return SessionUser(user_id=user.user_id, email=user.email), cookie_value


async def _destroy(token: str, db: AsyncSession = None) -> None:
    mongo = get_mongo_db()
    if mongo is not None:
        await mongo.sessions.delete_one({"token": token})
        return
    async with get_or_use_session(db) as _db:
        await _db.execute(delete(LoginSession).where(LoginSession.token == token))
        await safe_commit(_db)


@timeit("purge_expired_sessions")
async def purge_expired_sessions(now: datetime, db: AsyncSession = None) -> int:
    """Delete every session record whose expiry is at or before ``now``."""
    mongo = get_mongo_db()
    if mongo is not None:
        result = await mongo.sessions.delete_many({"expires_at": {"$lte": now}})
        return int(result.deleted_count)

    async with get_or_use_session(db) as _db:
        result = await _db.execute(delete(LoginSession).where(LoginSession.expires_at <= now))
        await safe_commit(_db)
        return int(result.rowcount or 0)


async def require_session(cookie_value: Optional[str], db: AsyncSession = None, now: Optional[datetime] = None) -> SessionUser:
    """Resolve the cookie to a live session whose user still exists."""
    payload = verify_session_cookie(cookie_value, verify_exp=False)
    if not payload:
        raise Unauthenticated()
    token = payload["sid"]
    now = now or utcnow()
    try:
        mongo = get_mongo_db()
        if mongo is not None:
            record = await mongo.sessions.find_one({"token": token})
            user_id = record.get("user_id") if record else None
            expires_at = record.get("expires_at") if record else None
        else:
            async with get_or_use_session(db) as _db:
                result = await _db.execute(select(LoginSession).where(LoginSession.token == token))
                row = result.scalars().first()
                user_id = row.user_id if row else None
                expires_at = row.expires_at if row else None

        if user_id is None:
            raise Unauthenticated()
        if expires_at is None or expires_at <= now:
            await _destroy(token, db=db)
            raise Unauthenticated("Session expired")

        user = await get_user_by_id(user_id, db=db)
        if user is None:
            logger.warning(f"Session bound to missing user {user_id}; destroying it")
            await _destroy(token, db=db)
            raise Unauthenticated()
        return SessionUser(user_id=user.user_id, email=user.email)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error resolving session: {e}")
        raise DependencyFailure()


async def logout(cookie_value: Optional[str], db: AsyncSession = None) -> None:
    """Destroy the session; a missing or already-gone session is not an error."""
    payload = verify_session_cookie(cookie_value, verify_exp=False)
    if not payload:
        return
    try:
        await _destroy(payload["sid"], db=db)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error destroying session: {e}")
        raise DependencyFailure()
    activity_logger.info(f"{payload.get('sub', '-')} logged out")
