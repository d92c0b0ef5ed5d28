from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy import text
from api.v1 import auth, internships
from core.config import settings
from core.exceptions import Unauthenticated
from db.base import initialize_database
from db.mongodb import init_mongo_indexes, get_mongo_db, close_mongo_client
from db.session import engine, SessionLocal
from services.expiry_sweeper import start_expiry_sweeper, stop_expiry_sweeper
from utils.logging_config import configure_logging, RequestContextMiddleware
from utils.responses import redirect, clear_session_cookie

# Configure logging with date-based files and TTL retention
logger = configure_logging("internboard")

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG
)

# Session-gated routes send unauthenticated visitors to the login page
@app.exception_handler(Unauthenticated)
async def unauthenticated_handler(request: Request, exc: Unauthenticated):
    response = redirect("/login")
    if settings.SESSION_COOKIE_NAME in request.cookies:
        clear_session_cookie(response)
    return response

# Global exception handler to ensure 500s for unexpected errors
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error at {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

app.add_middleware(GZipMiddleware, minimum_size=500)

# Add logging context middleware to capture user_id and API path
app.add_middleware(RequestContextMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, tags=["Authentication"])
app.include_router(internships.router, tags=["Internships"])

@app.on_event("startup")
async def startup():
    """Prepare the configured store and start the expiry sweeper"""
    if settings.USE_MONGO:
        await init_mongo_indexes()
        logger.info("Mongo indexes ensured")
    else:
        await initialize_database()
        logger.info("SQL database initialized")
    app.state.expiry_sweeper = start_expiry_sweeper() if settings.EXPIRY_SWEEP_ENABLED else None
    logger.info("Application startup complete")

@app.on_event("shutdown")
async def shutdown():
    """Application shutdown"""
    await stop_expiry_sweeper(getattr(app.state, "expiry_sweeper", None))
    if settings.USE_MONGO:
        close_mongo_client()
    elif engine is not None:
        await engine.dispose()
        logger.info("Disposed SQL engine")
    logger.info("Application shutdown complete")

@app.get("/health")
async def health_check():
    # Actively check DB connectivity according to config
    if settings.USE_MONGO:
        try:
            await get_mongo_db().command({"ping": 1})
            return {"status": "healthy", "database": "mongo_connected"}
        except Exception as e:
            logger.warning(f"Health Mongo check failed: {e}")
            return {"status": "degraded", "database": "mongo_unavailable"}
    try:
        async with SessionLocal() as db:
            await db.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "sql_connected"}
    except Exception as e:
        logger.warning(f"Health SQL check failed: {e}")
        return {"status": "degraded", "database": "sql_unavailable"}
