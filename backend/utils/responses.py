from fastapi import status
from fastapi.responses import JSONResponse, RedirectResponse
from core.config import settings

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}

def no_store_json(data, status_code: int = 200):
    """Return JSONResponse with no-store caching headers."""
    return JSONResponse(content=data, status_code=status_code, headers=NO_STORE_HEADERS)

def render_page(page: str, status_code: int = 200, **context):
    """View model for a page: its name plus the values the page shows."""
    return no_store_json({"page": page, **context}, status_code=status_code)

def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)

def set_session_cookie(response, cookie_value: str):
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=cookie_value,
        httponly=True,
        max_age=settings.SESSION_EXPIRE_MINUTES * 60,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
    )

def clear_session_cookie(response):
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME)
