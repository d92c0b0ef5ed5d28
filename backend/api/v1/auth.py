from fastapi import APIRouter, Depends, Form, Request
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_mail_channel
from core.config import settings
from core.exceptions import AppError
from db.session import get_db_session
from services.user_service import create_user
from services.session_service import create_session, login, logout
from services.password_reset_service import request_password_reset, verify_password_reset_otp, complete_password_reset
from utils.email import MailChannel
from utils.responses import render_page, redirect, set_session_cookie, clear_session_cookie

router = APIRouter()


@router.get("/")
async def index():
    return redirect("/login")


@router.get("/signup")
async def signup_page():
    return render_page("signup", error=None)


@router.post("/signup")
async def signup(
    username: str = Form(""),
    password: str = Form(""),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        user = await create_user(username, password, db=db)
        cookie_value = await create_session(user.user_id, user.email, db=db)
    except AppError as e:
        return render_page("signup", status_code=e.status_code, error=e.detail, username=username)
    response = redirect("/dashboard")
    set_session_cookie(response, cookie_value)
    return response


@router.get("/login")
async def login_page():
    return render_page("login", error=None)


@router.post("/login")
async def login_submit(
    username: str = Form(""),
    password: str = Form(""),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        _, cookie_value = await login(username, password, db=db)
    except AppError as e:
        return render_page("login", status_code=e.status_code, error=e.detail, username=username)
    response = redirect("/dashboard")
    set_session_cookie(response, cookie_value)
    return response


@router.post("/logout")
async def logout_submit(request: Request, db: AsyncSession = Depends(get_db_session)):
    try:
        await logout(request.cookies.get(settings.SESSION_COOKIE_NAME), db=db)
    except AppError as e:
        return render_page("login", status_code=e.status_code, error=e.detail)
    response = redirect("/login")
    clear_session_cookie(response)
    return response


@router.get("/forgot")
async def forgot_page():
    return render_page("forgot", error=None, message=None)


@router.post("/forgot")
async def forgot_submit(
    username: str = Form(""),
    db: AsyncSession = Depends(get_db_session),
    mailer: MailChannel = Depends(get_mail_channel),
):
    try:
        await request_password_reset(username, mailer, db=db)
    except AppError as e:
        return render_page("forgot", status_code=e.status_code, error=e.detail, message=None)
    return render_page("verify", username=username.strip().lower(), error=None)


@router.post("/verify")
async def verify_submit(
    username: str = Form(""),
    otp: str = Form(""),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        await verify_password_reset_otp(username, otp, db=db)
    except AppError as e:
        return render_page("verify", status_code=e.status_code, username=username, error=e.detail)
    return render_page("reset", username=username, error=None, message=None)


@router.post("/reset")
async def reset_submit(
    username: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form("", alias="confirmPassword"),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        await complete_password_reset(username, password, confirm_password, db=db)
    except AppError as e:
        return render_page("reset", status_code=e.status_code, username=username, error=e.detail, message=None)
    return render_page("reset", username=None, error=None, message="Password successfully changed!")
