import logging
import logging.handlers
import contextvars
from pathlib import Path
from typing import Dict, Optional, Tuple

from core.config import settings
from core.security import verify_session_cookie
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

ACTIVITY_LOGGER_NAME = "internboard.activity"

LOG_FORMAT = "%(levelname)s - %(asctime)s - %(user_id)s - %(api)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# file name and minimum level per rotating sink; None means the configured level
LOG_FILES: Dict[str, Tuple[str, Optional[int]]] = {
    "app": ("app.log", None),
    "access": ("access.log", None),
    "error": ("error.log", logging.WARNING),
    "activity": ("activity.log", logging.INFO),
}

# which sinks each named logger writes to
LOG_ROUTES: Dict[str, Tuple[str, ...]] = {
    "uvicorn": ("app", "error", "console"),
    "uvicorn.error": ("app", "error", "console"),
    "fastapi": ("app", "error", "console"),
    "uvicorn.access": ("access", "console"),
    ACTIVITY_LOGGER_NAME: ("activity", "console"),
}

user_id_var = contextvars.ContextVar("user_id", default="-")
api_var = contextvars.ContextVar("api", default="-")


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.user_id = user_id_var.get()
        record.api = api_var.get()
        return True


def map_log_level(level_name: str) -> int:
    level = logging.getLevelName((level_name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def _prepare(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    handler.addFilter(ContextFilter())
    return handler


def _daily_file(log_dir: Path, filename: str) -> logging.Handler:
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(log_dir / filename),
        when="midnight",
        backupCount=max(int(settings.LOG_TTL_DAYS), 0),
        encoding="utf-8",
        utc=True,
    )
    handler.suffix = "%Y-%m-%d"
    return handler


def _attach(target: logging.Logger, sinks: Dict[str, logging.Handler], names: Tuple[str, ...], level: int) -> None:
    for existing in list(target.handlers):
        target.removeHandler(existing)
    for name in names:
        target.addHandler(sinks[name])
    target.setLevel(level)


def configure_logging(app_logger_name: Optional[str] = None) -> logging.Logger:
    """Send log records to daily-rotated files under LOG_DIR and to the console.

    app.log takes everything at LOG_LEVEL, error.log warnings and above,
    access.log the uvicorn access lines, and activity.log the account
    events (signup, login, logout, password reset). Rotated files are kept
    for LOG_TTL_DAYS days.
    """
    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    level = map_log_level(settings.LOG_LEVEL)

    sinks = {
        name: _prepare(_daily_file(log_dir, filename), file_level if file_level is not None else level)
        for name, (filename, file_level) in LOG_FILES.items()
    }
    sinks["console"] = _prepare(logging.StreamHandler(), level)

    _attach(logging.getLogger(), sinks, ("app", "error", "console"), level)

    app_logger = logging.getLogger(app_logger_name or "internboard")
    routes = {app_logger.name: ("app", "error", "console"), **LOG_ROUTES}
    for logger_name, names in routes.items():
        target = logging.getLogger(logger_name)
        target.propagate = False
        _attach(target, sinks, names, logging.INFO if logger_name == ACTIVITY_LOGGER_NAME else level)

    return app_logger


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag every log line of a request with its user id and route."""

    async def dispatch(self, request: Request, call_next):
        payload = verify_session_cookie(request.cookies.get(settings.SESSION_COOKIE_NAME)) or {}
        user_token = user_id_var.set(payload.get("user_id") or payload.get("sub") or "-")
        api_token = api_var.set(f"{request.method} {request.url.path}")
        try:
            return await call_next(request)
        finally:
            user_id_var.reset(user_token)
            api_var.reset(api_token)
