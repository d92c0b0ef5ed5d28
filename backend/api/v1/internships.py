from datetime import datetime
from fastapi import APIRouter, Depends, Form, Request
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_current_user
from core.config import settings
from core.exceptions import AppError, Forbidden, InvalidDeadline
from db.session import get_db_session
from schemas.internship_schema import InternshipFields
from schemas.user_schema import SessionUser
from services.internship_service import create_internship, list_internships, get_internship, delete_internship
from utils.responses import render_page, redirect

router = APIRouter()


@router.get("/dashboard")
async def dashboard(
    request: Request,
    current_user: SessionUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    listings = await list_internships(settings.DASHBOARD_LISTING_LIMIT, db=db)
    return render_page(
        "dashboard",
        user_name=current_user.email,
        user_id=current_user.user_id,
        internships=[item.model_dump(mode="json") for item in listings],
        error=request.query_params.get("error"),
    )


@router.get("/post-internship")
async def post_internship_page(current_user: SessionUser = Depends(get_current_user)):
    return render_page("post-internship", error=None)


@router.post("/post-internship")
async def post_internship(
    company: str = Form(""),
    batch: str = Form(""),
    description: str = Form(""),
    link: str = Form(""),
    deadline: str = Form(""),
    current_user: SessionUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    fields = InternshipFields(company=company, batch=batch, description=description, link=link)
    try:
        try:
            parsed_deadline = datetime.fromisoformat(deadline.strip())
        except ValueError:
            raise InvalidDeadline("Please enter a valid deadline")
        await create_internship(current_user.user_id, fields, parsed_deadline, db=db)
    except AppError as e:
        return render_page("post-internship", status_code=e.status_code, error=e.detail, **fields.model_dump())
    return redirect("/dashboard")


@router.get("/internship/{internship_id}")
async def internship_detail(
    internship_id: str,
    current_user: SessionUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    listing = await get_internship(internship_id, db=db)
    return render_page(
        "internship",
        internship=listing.model_dump(mode="json"),
        can_delete=listing.posted_by == current_user.user_id,
    )


@router.delete("/internship/{internship_id}")
async def internship_delete(
    internship_id: str,
    current_user: SessionUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        await delete_internship(internship_id, current_user.user_id, db=db)
    except Forbidden:
        return redirect("/dashboard?error=not-authorized")
    return redirect("/dashboard")
