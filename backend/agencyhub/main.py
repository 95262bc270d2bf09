"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from agencyhub.api import router as api_router
from agencyhub.config import get_settings
from agencyhub.db.session import close_db, init_db
from agencyhub.exceptions import (
    AgencyHubError,
    BatchWriteError,
    DomainValidationError,
    InvalidStateError,
    MissingReferenceError,
    NotFoundError,
    RestoreWindowExpiredError,
)
from agencyhub.middleware.logging import LoggingMiddleware
from agencyhub.middleware.request_id import RequestIDMiddleware
from agencyhub.utils.clock import isoformat

logger = structlog.get_logger()
settings = get_settings()

# Most specific first; the first isinstance match wins
ERROR_STATUS_CODES: list[tuple[type[AgencyHubError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (MissingReferenceError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (DomainValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (RestoreWindowExpiredError, status.HTTP_410_GONE),
    (BatchWriteError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_code_for(exc: AgencyHubError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


async def agencyhub_error_handler(request: Request, exc: AgencyHubError) -> ORJSONResponse:
    """Render domain errors as ``{"detail": {"code", "message", ...}}``."""
    status_code = status_code_for(exc)
    detail: dict = {"code": exc.code, "message": exc.message}
    if isinstance(exc, DomainValidationError) and exc.details:
        detail["details"] = exc.details
    if isinstance(exc, RestoreWindowExpiredError) and exc.restore_deadline:
        detail["restore_deadline"] = isoformat(exc.restore_deadline)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "domain_error",
        code=exc.code,
        status_code=status_code,
        path=request.url.path,
        error=exc.message,
    )

    headers = {"Retry-After": "5"} if isinstance(exc, BatchWriteError) else None
    return ORJSONResponse(status_code=status_code, content={"detail": detail}, headers=headers)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    logger.info("starting_api", app=settings.app_name, version=settings.app_version)
    await init_db()

    yield

    logger.info("shutting_down_api", app=settings.app_name)
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Agency task approval workflow and production planning",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    # Add middleware (order matters - last added is first executed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    # Trust proxy headers (X-Forwarded-Proto, X-Forwarded-For) from nginx
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

    app.add_exception_handler(AgencyHubError, agencyhub_error_handler)

    # Include API router
    app.include_router(api_router, prefix=settings.api_prefix)

    return app


app = create_app()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint for load balancers."""
    return {"status": "healthy", "version": settings.app_version}
