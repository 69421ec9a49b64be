"""Main FastAPI application for the Calendar Hub service."""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.routes import calendar, health, organization_events, subscriptions
from src.core.database import get_database
from src.core.settings import get_settings
from src.middleware.auth import AuthenticationMiddleware
from src.middleware.logging import LoggingMiddleware, configure_logging
from src.schemas.base import JSONAPIError, JSONAPIErrorResponse

# Initialize logging
configure_logging()

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    # Startup
    await get_database().connect()
    yield
    # Shutdown
    await get_database().disconnect()


app = FastAPI(
    title="Calendar Hub",
    description="Multi-tenant calendar aggregation of subscribed catalogs and organization events",
    version=settings.service_version,
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
    openapi_url="/openapi.json" if not settings.is_production else None,
)

# Security middleware
app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=settings.allowed_hosts
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

# Logging wraps authentication
app.add_middleware(AuthenticationMiddleware)
app.add_middleware(LoggingMiddleware)


# Exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with JSON:API format."""
    detail = exc.detail if isinstance(exc.detail, dict) else {"message": str(exc.detail)}
    error = JSONAPIError(
        status=str(exc.status_code),
        code=detail.get("code", "HTTP_ERROR"),
        title=detail.get("error", "http_error"),
        detail=detail.get("message", "HTTP Error"),
        source={"pointer": request.url.path},
    )
    if detail.get("validation_errors"):
        error.meta = {"validation_errors": detail["validation_errors"]}

    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(JSONAPIErrorResponse(errors=[error]), exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed path, query or body values as 400 errors."""
    return JSONResponse(
        status_code=400,
        content={
            "errors": [
                {
                    "status": "400",
                    "code": "INVALID_REQUEST",
                    "title": "validation_failed",
                    "detail": error.get("msg", "Invalid value"),
                    "source": {"parameter": ".".join(str(part) for part in error.get("loc", ()))}
                }
                for error in exc.errors()
            ]
        }
    )


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc):
    """Handle 500 errors with JSON:API format."""
    return JSONResponse(
        status_code=500,
        content={
            "errors": [{
                "status": "500",
                "code": "INTERNAL_SERVER_ERROR",
                "title": "Internal Server Error",
                "detail": "An unexpected error occurred"
            }]
        }
    )


# Routes
app.include_router(health.router, prefix="", tags=["system"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "status": "running",
        "api": {
            "docs": "/docs" if not settings.is_production else None,
            "openapi": "/openapi.json" if not settings.is_production else None
        }
    }


app.include_router(calendar.router, prefix=f"{settings.api_v1_prefix}/calendar", tags=["calendar"])
app.include_router(subscriptions.router, prefix=settings.api_v1_prefix, tags=["subscriptions"])
app.include_router(
    organization_events.router, prefix=settings.api_v1_prefix, tags=["organization events"]
)


if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
