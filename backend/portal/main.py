"""FastAPI Application Entry Point."""

import os

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from portal import __version__
from portal.api.deps import SettingsDep, get_azure_clients
from portal.api.v1 import api_router
from portal.core.config import get_settings
from portal.core.exceptions import PortalError
from portal.core.logging import configure_logging
from portal.core.rate_limit import limiter
from portal.middleware import RequestLoggingMiddleware

settings = get_settings()
configure_logging(settings)
logger = structlog.get_logger(__name__)

# Initialize Sentry before creating the FastAPI app
if settings.SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[FastApiIntegration(transaction_style="endpoint")],
        # Caller emails arrive in gateway headers
        send_default_pii=False,
        release=f"vm-portal@{os.getenv('GIT_COMMIT', 'dev')}",
        attach_stacktrace=True,
    )
    logger.info("sentry.initialized", environment=settings.SENTRY_ENVIRONMENT)
else:
    logger.info("sentry.disabled")

app = FastAPI(
    title=settings.APP_NAME,
    description="VM Portal - view and control Azure VMs, App Services and Automation schedules",
    version=__version__,
    docs_url=f"{settings.API_PREFIX}/docs",
    redoc_url=f"{settings.API_PREFIX}/redoc",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
)

# Configure rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(RequestLoggingMiddleware, log_all_requests=settings.DEBUG)

# Configure CORS with the validated origin whitelist (no wildcards)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
        "X-Requested-With",
        "X-Request-ID",
    ],
    max_age=settings.CORS_MAX_AGE,
)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    """Render portal errors as ``{"error", "message"}`` with their status code."""
    if exc.status_code >= 500:
        logger.error(
            "request.error",
            path=request.url.path,
            status_code=exc.status_code,
            error=exc.error,
            detail=exc.message,
        )
    else:
        logger.info(
            "request.invalid",
            path=request.url.path,
            status_code=exc.status_code,
            error=exc.error,
            detail=exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query parameters are client errors (400)."""
    errors = exc.errors()
    if any(error.get("type") == "json_invalid" for error in errors):
        content = {"error": "Invalid JSON body"}
    else:
        details = []
        for error in errors:
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            details.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
        content = {"error": "Invalid request", "message": "; ".join(details)}
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything not classified above is a 500 with a sanitized JSON body."""
    logger.exception(
        "request.unhandled_error",
        path=request.url.path,
        method=request.method,
        error_type=exc.__class__.__name__,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred while processing the request",
        },
    )


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """Release Azure HTTP sessions held by the shared client factory."""
    if get_azure_clients.cache_info().currsize:
        get_azure_clients().close()
        get_azure_clients.cache_clear()


@app.get(f"{settings.API_PREFIX}/health", tags=["health"])
async def health_check(settings: SettingsDep) -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "service": settings.APP_NAME,
            "environment": settings.APP_ENV,
        },
    )


app.include_router(api_router, prefix=settings.API_PREFIX)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "portal.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
