from typing import Optional
from bson import ObjectId
from pymongo.errors import DuplicateKeyError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from core.config import settings
from core.exceptions import AppError, InvalidIdentity, DuplicateIdentity, WeakCredential, NotFound, BadCredential, DependencyFailure
from core.security import get_password_hash, verify_password, normalize_email, is_valid_email
from db.mongodb import get_mongo_db
from db.session import get_or_use_session
from db.models.user import User as UserModel
from schemas.user_schema import UserRecord
from utils.db import safe_commit
from utils.logging_config import ACTIVITY_LOGGER_NAME
from utils.timing import timeit, utcnow
import logging

logger = logging.getLogger(__name__)
activity_logger = logging.getLogger(ACTIVITY_LOGGER_NAME)


def check_password_strength(password: str) -> None:
    if len(password or "") < settings.PASSWORD_MIN_LENGTH:
        raise WeakCredential(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long")


def _user_from_doc(doc: dict) -> UserRecord:
    return UserRecord(
        user_id=str(doc["_id"]),
        email=doc["email"],
        hashed_password=doc["hashed_password"],
        otp_code=doc.get("otp_code"),
        otp_expires_at=doc.get("otp_expires_at"),
        reset_authorized=bool(doc.get("reset_authorized", False)),
    )


def _user_from_row(row: UserModel) -> UserRecord:
    return UserRecord(
        user_id=str(row.id),
        email=row.email,
        hashed_password=row.hashed_password,
        otp_code=row.otp_code,
        otp_expires_at=row.otp_expires_at,
        reset_authorized=bool(row.reset_authorized),
    )


@timeit("create_user")
async def create_user(email: str, password: str, db: AsyncSession = None) -> UserRecord:
    """Create a new user; the password is stored only as a bcrypt hash."""
    email = normalize_email(email)
    if not is_valid_email(email):
        raise InvalidIdentity()
    try:
        mongo = get_mongo_db()
        if mongo is not None:
            if await mongo.users.find_one({"email": email}):
                raise DuplicateIdentity()
            check_password_strength(password)
            now = utcnow()
            doc = {
                "email": email,
                "hashed_password": get_password_hash(password),
                "otp_code": None,
                "otp_expires_at": None,
                "reset_authorized": False,
                "created_at": now,
                "updated_at": now,
            }
            try:
                result = await mongo.users.insert_one(doc)
            except DuplicateKeyError as e:
                raise DuplicateIdentity() from e
            doc["_id"] = result.inserted_id
            activity_logger.info(f"{email} signed up")
            return _user_from_doc(doc)

        async with get_or_use_session(db) as _db:
            existing = await _db.execute(select(UserModel).where(UserModel.email == email))
            if existing.scalars().first() is not None:
                raise DuplicateIdentity()
            check_password_strength(password)
            new_user = UserModel(
                email=email,
                hashed_password=get_password_hash(password),
                otp_code=None,
                otp_expires_at=None,
                reset_authorized=False,
            )
            _db.add(new_user)
            await safe_commit(_db, conflict_error=DuplicateIdentity())
            activity_logger.info(f"{email} signed up")
            return _user_from_row(new_user)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error creating user: {e}")
        raise DependencyFailure()


async def get_user_by_email(email: str, db: AsyncSession = None) -> Optional[UserRecord]:
    email = normalize_email(email)
    mongo = get_mongo_db()
    if mongo is not None:
        doc = await mongo.users.find_one({"email": email})
        return _user_from_doc(doc) if doc else None

    async with get_or_use_session(db) as _db:
        result = await _db.execute(select(UserModel).where(UserModel.email == email))
        row = result.scalars().first()
        return _user_from_row(row) if row else None


async def get_user_by_id(user_id: str, db: AsyncSession = None) -> Optional[UserRecord]:
    mongo = get_mongo_db()
    if mongo is not None:
        if not ObjectId.is_valid(user_id):
            return None
        doc = await mongo.users.find_one({"_id": ObjectId(user_id)})
        return _user_from_doc(doc) if doc else None

    try:
        pk = int(user_id)
    except (TypeError, ValueError):
        return None
    async with get_or_use_session(db) as _db:
        row = await _db.get(UserModel, pk)
        return _user_from_row(row) if row else None


@timeit("authenticate_user")
async def authenticate_user(email: str, password: str, db: AsyncSession = None) -> UserRecord:
    """Return the user when the password verifies.

    Raises NotFound for an unknown email and BadCredential for a wrong password.
    """
    try:
        user = await get_user_by_email(email, db=db)
    except Exception as e:
        logger.error(f"Error authenticating user: {e}")
        raise DependencyFailure()
    if user is None:
        raise NotFound("Invalid Email")
    if not verify_password(password or "", user.hashed_password):
        raise BadCredential()
    return user


async def update_credential(email: str, new_password: str, db: AsyncSession = None) -> None:
    """Rehash and overwrite the stored password."""
    check_password_strength(new_password)
    email = normalize_email(email)
    hashed = get_password_hash(new_password)
    try:
        mongo = get_mongo_db()
        if mongo is not None:
            result = await mongo.users.update_one(
                {"email": email},
                {"$set": {"hashed_password": hashed, "updated_at": utcnow()}},
            )
            if result.matched_count == 0:
                raise NotFound("Email not found")
            return

        async with get_or_use_session(db) as _db:
            result = await _db.execute(
                update(UserModel).where(UserModel.email == email).values(hashed_password=hashed)
            )
            if result.rowcount == 0:
                await _db.rollback()
                raise NotFound("Email not found")
            await safe_commit(_db)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error updating credential: {e}")
        raise DependencyFailure()
