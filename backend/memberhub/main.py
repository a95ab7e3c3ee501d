"""
MemberHub FastAPI Application - Main entry point.

MemberHub manages organization memberships:

- Membership types: tiers with price, duration, approval rules and custom fields
- Memberships: application, approval/rejection, renewal and expiry
- Linked members: dependents attached to a membership
- Workflows: definitions enqueued on lifecycle events for an external worker
- Audit log: append-only record of administrative actions

All endpoints live under /api and return ``{"<resource>": ...}`` on success
or ``{"error": {"message": ...}}`` on failure.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from memberhub.core.config import settings
from memberhub.core.exceptions import MemberHubError
from memberhub.core.logging_config import configure_logging
from memberhub.db.base import init_db
from memberhub import models  # noqa: F401  registers every table on Base.metadata
from memberhub.schemas.common import HealthResponse
from memberhub.api.v1 import (
    auth_router,
    membership_types_router,
    memberships_router,
    workflows_router,
    audit_log_router,
    users_router,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    configure_logging()
    # Note: In production, use Alembic migrations instead
    await init_db()
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Membership management API: types, lifecycle, linked members, workflows.",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# HEALTH CHECK
# ============================================================================

@app.get("/api/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(code=200, message="API is healthy.")


# ============================================================================
# ROUTERS
# ============================================================================

app.include_router(auth_router, prefix=settings.API_PREFIX, tags=["auth"])
app.include_router(membership_types_router, prefix=settings.API_PREFIX, tags=["membership-types"])
app.include_router(memberships_router, prefix=settings.API_PREFIX, tags=["memberships"])
app.include_router(workflows_router, prefix=settings.API_PREFIX, tags=["workflows"])
app.include_router(audit_log_router, prefix=settings.API_PREFIX, tags=["audit-log"])
app.include_router(users_router, prefix=settings.API_PREFIX, tags=["users"])


# ============================================================================
# ERROR HANDLERS
# ============================================================================

def error_response(status_code: int, message: str, details: list | None = None) -> JSONResponse:
    error: dict = {"message": message}
    if details is not None:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


@app.exception_handler(MemberHubError)
async def memberhub_exception_handler(request: Request, exc: MemberHubError):
    return error_response(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(exc.status_code, message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return error_response(400, "Validation failed", details)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    if settings.DEBUG:
        return error_response(500, str(exc))
    return error_response(500, "Internal server error")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "memberhub.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
