from datetime import datetime
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from core.config import settings
import logging
import re
import secrets

logger = logging.getLogger(__name__)

# Password hashing; cost factor comes from settings
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

def normalize_email(email: str) -> str:
    """Identities are case-insensitive: strip and lower-case."""
    return (email or "").strip().lower()

def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    """Generate password hash"""
    return pwd_context.hash(password)

def generate_session_token() -> str:
    return secrets.token_urlsafe(32)

def generate_otp_code() -> str:
    """Uniform 6-digit code in 100000-999999."""
    return str(100000 + secrets.randbelow(900000))

def create_session_cookie(session_token: str, user_id: str, email: str, expires_at: datetime) -> str:
    """Sign the session reference handed to the client."""
    to_encode = {
        "sid": session_token,
        "sub": email,
        "user_id": user_id,
        "exp": expires_at,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def verify_session_cookie(cookie_value: str, verify_exp: bool = True) -> Optional[dict]:
    """Verify and decode a session cookie; None when tampered or expired.

    With ``verify_exp=False`` an expired but correctly signed cookie still
    decodes, so the caller can find and remove its session record.
    """
    if not cookie_value:
        return None
    try:
        payload = jwt.decode(
            cookie_value,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"verify_exp": verify_exp},
        )
        if not payload.get("sid"):
            return None
        return payload
    except JWTError as e:
        logger.warning(f"Session cookie decode failed: {e}")
        return None
