from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # App settings
    APP_NAME: str = "InternBoard"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Security settings
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    SESSION_EXPIRE_MINUTES: int = 120
    SESSION_COOKIE_NAME: str = "internboard_session"
    SESSION_COOKIE_SECURE: bool = False
    BCRYPT_ROUNDS: int = 10
    PASSWORD_MIN_LENGTH: int = 6

    # Password recovery
    OTP_EXPIRE_MINUTES: int = 5

    # Listings
    DASHBOARD_LISTING_LIMIT: int = 50
    EXPIRY_SWEEP_ENABLED: bool = True
    EXPIRY_SWEEP_INTERVAL_SECONDS: int = 3600

    # Database settings (SQL fallback when USE_MONGO=false)
    DATABASE_URL: str = "sqlite+aiosqlite:///./internboard.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300
    DB_POOL_TIMEOUT: int = 10
    DB_PRE_PING: bool = True

    # CORS settings
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
    ]

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TTL_DAYS: int = 7

    # SMTP / Email settings
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM_EMAIL: Optional[str] = None
    SMTP_FROM_NAME: str = "InternBoard"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False
    SMTP_TIMEOUT: int = 15
    SMTP_DEBUG: bool = False

    # MongoDB
    USE_MONGO: bool = True
    MONGO_URI: Optional[str] = None
    MONGO_DB: str = "internboard"

    class Config:
        env_file = ".env"
        case_sensitive = True

# Create settings instance
settings = Settings()

# Validate required settings
if not settings.SECRET_KEY:
    raise ValueError("SECRET_KEY environment variable is required")

if settings.USE_MONGO and not settings.MONGO_URI:
    raise ValueError("MONGO_URI environment variable is required when USE_MONGO=true")
