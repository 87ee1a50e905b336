import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from . import models  # noqa: F401 - registers every table on Base
from .config import ALLOWED_ORIGINS
from .database import Base, engine
from .domain.bookings.router import router as bookings_router
from .domain.catalog.router import router as catalog_router
from .domain.clients.router import router as clients_router
from .domain.loyalty.router import router as loyalty_router
from .domain.profile.router import router as profile_router
from .domain.reviews.router import router as reviews_router
from .domain.scheduling.router import router as availability_router
from .domain.shop.router import router as shop_router
from .domain.training.router import router as training_router
from .routes.auth_callback import router as auth_callback_router
from .routes.cron import router as cron_router
from .routes.invites import router as invites_router
from .routes.square_webhooks import router as square_webhooks_router
from .security_headers import SecurityHeadersMiddleware

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# httpx logs every Square/Supabase/Zoho request at INFO
for noisy in ("httpx", "httpcore"):
    logging.getLogger(noisy).setLevel(logging.WARNING)

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"
UNHEADERED_PATHS = ["/health", "/docs", "/openapi.json"]

STUDIO_ROUTERS = (
    auth_callback_router,
    profile_router,
    availability_router,
    catalog_router,
    bookings_router,
    reviews_router,
    loyalty_router,
    training_router,
    shop_router,
    clients_router,
    invites_router,
    square_webhooks_router,
    cron_router,
)


def create_tables() -> None:
    """Create missing tables; several uvicorn workers may race on the same database"""
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info(f"✅ Studio tables ready ({len(Base.metadata.tables)} tables)")
    except SQLAlchemyError as e:
        if "already exists" in str(e) or "duplicate key" in str(e):
            logger.info("Studio tables were created by another worker")
        else:
            logger.error(f"❌ Could not create studio tables: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 T Creative Studio API starting")
    create_tables()
    yield
    logger.info("T Creative Studio API stopped")


app = FastAPI(title="T Creative Studio API", version="1.0.0", lifespan=lifespan)


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validator exceptions end up in ctx and are not JSON serializable"""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """A missing Authorization header is an auth problem, not a bad payload"""
    header_errors = [e for e in exc.errors() if "authorization" in str(e.get("loc", "")).lower()]
    if header_errors:
        logger.warning(f"🔒 {request.url.path} called without a bearer token")
        return JSONResponse(status_code=401, content={"detail": "Not authenticated"})

    logger.warning(f"Rejected payload for {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"💥 {request.method} {request.url.path} raised {type(e).__name__}: {e}")
        raise
    if response.status_code >= 500:
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.error(f"{request.method} {request.url.path} -> {response.status_code} in {elapsed_ms:.0f}ms")
    return response


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware, exclude_paths=UNHEADERED_PATHS)
else:
    logger.warning("⚠️ SECURITY_HEADERS_ENABLED=false, responses go out without security headers")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
logger.info(f"CORS origins: {', '.join(ALLOWED_ORIGINS)}")

for studio_router in STUDIO_ROUTERS:
    app.include_router(studio_router)


@app.get("/")
def root():
    return {"message": "T Creative Studio API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/redis")
async def redis_health_check():
    """Rate limiting fails closed without Redis, so monitoring watches this"""
    from .rate_limiter import get_redis_client

    try:
        client = get_redis_client()
        started = time.perf_counter()
        client.ping()
        latency_ms = (time.perf_counter() - started) * 1000
        server = client.info("server")
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}

    return {
        "status": "healthy",
        "redis": {
            "connected": True,
            "latency_ms": round(latency_ms, 2),
            "version": server.get("redis_version", "unknown"),
        },
    }
