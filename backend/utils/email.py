import smtplib
from email.message import EmailMessage
from typing import Optional, Protocol
from starlette.concurrency import run_in_threadpool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


class MailChannel(Protocol):
    async def send(self, to_address: str, subject: str, html_body: str) -> bool:
        ...


def _build_message(subject: str, to_email: str, html_body: str, text_body: Optional[str] = None) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = f"{settings.SMTP_FROM_NAME} <{settings.SMTP_FROM_EMAIL}>" if settings.SMTP_FROM_NAME and settings.SMTP_FROM_EMAIL else (settings.SMTP_FROM_EMAIL or "no-reply@example.com")
    msg["To"] = to_email
    if text_body:
        msg.set_content(text_body)
    msg.add_alternative(html_body, subtype="html")
    return msg


def send_email(subject: str, to_email: str, html_body: str, text_body: Optional[str] = None) -> bool:
    if not settings.SMTP_HOST or not settings.SMTP_FROM_EMAIL:
        logger.warning("SMTP not configured; skipping email send")
        return False
    try:
        msg = _build_message(subject, to_email, html_body, text_body)
        timeout = settings.SMTP_TIMEOUT or 15
        debug = 1 if settings.SMTP_DEBUG else 0
        if settings.SMTP_USE_SSL:
            with smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, timeout=timeout) as server:
                server.set_debuglevel(debug)
                if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
                    server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
                server.send_message(msg)
        else:
            with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=timeout) as server:
                server.set_debuglevel(debug)
                if settings.SMTP_USE_TLS:
                    server.starttls()
                if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
                    server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
                server.send_message(msg)
        logger.info(f"Sent email to {to_email} with subject '{subject}'")
        return True
    except Exception as exc:
        logger.error(f"Failed to send email to {to_email}: {exc}")
        return False


class SmtpMailChannel:
    """Mail channel backed by ``smtplib``; the blocking send runs in the threadpool."""

    async def send(self, to_address: str, subject: str, html_body: str) -> bool:
        return await run_in_threadpool(send_email, subject, to_address, html_body)


def build_otp_email(otp_code: str, expire_minutes: int) -> tuple[str, str]:
    """Return (subject, html) for a password reset code."""
    subject = "Your OTP to Reset Password"
    html = f"""
    <div style='font-family: Arial, sans-serif; line-height: 1.5;'>
      <h3>Your OTP: <b>{otp_code}</b></h3>
      <p>It is valid for {expire_minutes} minutes.</p>
      <p>If you did not request a password reset, you can safely ignore this email.</p>
      <p>{settings.SMTP_FROM_NAME or 'InternBoard'} Team</p>
    </div>
    """
    return subject, html
