"""Password recovery by emailed one-time passcode.

Per user the flow is NoReset -> OtpPending -> ResetAuthorized -> NoReset.
The state lives on the user record and every transition is a single
conditional update, so concurrent requests for one email cannot interleave
a read and a write.
"""
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from core.config import settings
from core.exceptions import AppError, NotFound, InvalidOrExpired, ResetNotAuthorized, PasswordMismatch, DispatchFailed, DependencyFailure
from core.security import generate_otp_code, get_password_hash, normalize_email
from db.mongodb import get_mongo_db
from db.session import get_or_use_session
from db.models.user import User as UserModel
from services.user_service import check_password_strength, get_user_by_email
from utils.db import safe_commit
from utils.email import MailChannel, build_otp_email
from utils.logging_config import ACTIVITY_LOGGER_NAME
from utils.timing import timeit, utcnow
import logging

logger = logging.getLogger(__name__)
activity_logger = logging.getLogger(ACTIVITY_LOGGER_NAME)


@timeit("request_password_reset")
async def request_password_reset(email: str, mailer: MailChannel, db: AsyncSession = None, now: Optional[datetime] = None) -> datetime:
    """Issue a fresh OTP for ``email`` and mail it.

    Any earlier code is overwritten. The new state is committed before the
    mail is sent; on a send failure DispatchFailed is raised and the user may
    simply request again. Returns the code's expiry.
    """
    email = normalize_email(email)
    now = now or utcnow()
    otp_code = generate_otp_code()
    expires_at = now + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)
    otp_fields = {"otp_code": otp_code, "otp_expires_at": expires_at, "reset_authorized": False}
    try:
        mongo = get_mongo_db()
        if mongo is not None:
            updated = await mongo.users.find_one_and_update(
                {"email": email},
                {"$set": {**otp_fields, "updated_at": now}},
            )
            if updated is None:
                raise NotFound("Email not found")
        else:
            async with get_or_use_session(db) as _db:
                result = await _db.execute(
                    update(UserModel).where(UserModel.email == email).values(**otp_fields)
                )
                if result.rowcount == 0:
                    await _db.rollback()
                    raise NotFound("Email not found")
                await safe_commit(_db)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error requesting password reset: {e}")
        raise DependencyFailure()

    subject, html = build_otp_email(otp_code, settings.OTP_EXPIRE_MINUTES)
    try:
        sent = await mailer.send(email, subject, html)
    except Exception as e:
        logger.error(f"OTP dispatch to {email} raised: {e}")
        sent = False
    if not sent:
        logger.warning(f"OTP dispatch failed for {email}; reset state kept for a retry")
        raise DispatchFailed()
    logger.info(f"Password reset OTP sent to {email}")
    return expires_at


@timeit("verify_password_reset_otp")
async def verify_password_reset_otp(email: str, otp_code: str, db: AsyncSession = None, now: Optional[datetime] = None) -> None:
    """Consume a pending code and authorize a password change."""
    email = normalize_email(email)
    otp_code = (otp_code or "").strip()
    now = now or utcnow()
    if not otp_code:
        raise InvalidOrExpired()
    authorized = {"otp_code": None, "otp_expires_at": None, "reset_authorized": True}
    try:
        mongo = get_mongo_db()
        if mongo is not None:
            updated = await mongo.users.find_one_and_update(
                {"email": email, "otp_code": otp_code, "otp_expires_at": {"$gt": now}},
                {"$set": {**authorized, "updated_at": now}},
            )
            if updated is None:
                raise InvalidOrExpired()
            return

        async with get_or_use_session(db) as _db:
            result = await _db.execute(
                update(UserModel)
                .where(
                    UserModel.email == email,
                    UserModel.otp_code == otp_code,
                    UserModel.otp_expires_at > now,
                )
                .values(**authorized)
            )
            if result.rowcount == 0:
                await _db.rollback()
                raise InvalidOrExpired()
            await safe_commit(_db)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error verifying password reset OTP: {e}")
        raise DependencyFailure()


@timeit("complete_password_reset")
async def complete_password_reset(email: str, new_password: str, confirm_password: str, db: AsyncSession = None) -> None:
    """Set the new password; only valid right after a successful OTP check."""
    email = normalize_email(email)
    try:
        user = await get_user_by_email(email, db=db)
    except Exception as e:
        logger.error(f"Error loading user for password reset: {e}")
        raise DependencyFailure()
    if user is None or not user.reset_authorized:
        raise ResetNotAuthorized()
    if new_password != confirm_password:
        raise PasswordMismatch()
    check_password_strength(new_password)

    hashed = get_password_hash(new_password)
    try:
        mongo = get_mongo_db()
        if mongo is not None:
            updated = await mongo.users.find_one_and_update(
                {"email": email, "reset_authorized": True},
                {"$set": {"hashed_password": hashed, "reset_authorized": False, "updated_at": utcnow()}},
            )
            if updated is None:
                raise ResetNotAuthorized()
        else:
            async with get_or_use_session(db) as _db:
                result = await _db.execute(
                    update(UserModel)
                    .where(UserModel.email == email, UserModel.reset_authorized == True)  # noqa: E712
                    .values(hashed_password=hashed, reset_authorized=False)
                )
                if result.rowcount == 0:
                    await _db.rollback()
                    raise ResetNotAuthorized()
                await safe_commit(_db)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error completing password reset: {e}")
        raise DependencyFailure()
    activity_logger.info(f"{email} reset their password")
