from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from core.config import settings
from db.session import get_db_session
from schemas.user_schema import SessionUser
from services.session_service import require_session
from utils.email import MailChannel, SmtpMailChannel


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db_session)) -> SessionUser:
    """Gate a route on a live session; Unauthenticated is turned into a redirect to /login."""
    return await require_session(request.cookies.get(settings.SESSION_COOKIE_NAME), db=db)


def get_mail_channel() -> MailChannel:
    return SmtpMailChannel()
