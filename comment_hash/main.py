from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import inspect
from sqlalchemy.orm import Session

from comment_hash.config import settings
from comment_hash.database import engine
from comment_hash.logging_config import setup_logging
from comment_hash.middleware.logging import CORRELATION_HEADER, LoggingMiddleware
from comment_hash.middleware.rate_limit import limiter
from comment_hash.routers import admin, challenges, comments
from comment_hash.services.settings_store import SettingsStore

# Tables are managed by Alembic migrations
# Run: alembic upgrade head
REQUIRED_TABLES = {"options"}

logger = structlog.get_logger()


def check_database_tables() -> None:
    """Fail fast when migrations have not been applied."""
    missing = REQUIRED_TABLES - set(inspect(engine).get_table_names())
    if missing:
        raise RuntimeError(
            f"Database tables missing: {', '.join(sorted(missing))}. "
            "Run `alembic upgrade head` before starting the server."
        )


def initialize_settings() -> None:
    """Generate the secret key and default settings on first start."""
    with Session(engine) as db:
        if SettingsStore(db).activate():
            logger.info("pow_settings_initialized")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    check_database_tables()
    initialize_settings()
    yield


app = FastAPI(
    title="Comment Hash",
    description="Proof-of-work gate for comment submissions",
    version="1.0.1",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """500 response that still carries the correlation ID."""
    headers = {}
    correlation_id = structlog.contextvars.get_contextvars().get("correlation_id")
    if correlation_id:
        headers[CORRELATION_HEADER] = correlation_id
    return JSONResponse(
        status_code=500, content={"detail": "Internal Server Error"}, headers=headers
    )


app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(LoggingMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(challenges.router, prefix="/api/v1", tags=["challenges"])
app.include_router(comments.router, prefix="/api/v1", tags=["comments"])
app.include_router(admin.router, prefix="/api/v1", tags=["admin"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
