"""Structured request logging."""

import logging
import time
import uuid
from typing import Callable, Optional

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.core.settings import get_settings

settings = get_settings()

SENSITIVE_HEADERS = {"authorization", "cookie", "x-api-key"}


def configure_logging(log_level: Optional[str] = None):
    """Configure stdlib logging and structlog with JSON output."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level or settings.log_level),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs the start and end of every request.

    Tenant and user ids are read from ``request.state`` after the request has
    been handled, so they are present whenever authentication succeeded.
    """

    def __init__(self, app, logger_name: str = "calendar.http"):
        super().__init__(app)
        self.logger = structlog.get_logger(logger_name)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.perf_counter()

        start_data = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
            "client_ip": self._get_client_ip(request),
        }
        if settings.debug:
            start_data["headers"] = self._sanitize_headers(dict(request.headers))
        self.logger.info("HTTP request started", **start_data)

        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.error(
                "HTTP request failed with exception",
                error_type=type(e).__name__,
                error_message=str(e),
                **self._finish_data(request, request_id, start_time),
            )
            raise

        finish_data = self._finish_data(request, request_id, start_time)
        finish_data["status_code"] = response.status_code
        if response.status_code < 400:
            self.logger.info("HTTP request completed", **finish_data)
        elif response.status_code < 500:
            self.logger.warning("HTTP request completed with client error", **finish_data)
        else:
            self.logger.error("HTTP request completed with server error", **finish_data)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(finish_data["process_time_ms"])
        return response

    @staticmethod
    def _finish_data(request: Request, request_id: str, start_time: float) -> dict:
        return {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "tenant_id": getattr(request.state, "tenant_id", None),
            "user_id": getattr(request.state, "user_id", None),
            "process_time_ms": round((time.perf_counter() - start_time) * 1000, 2),
        }

    @staticmethod
    def _get_client_ip(request: Request) -> str:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        if request.client:
            return request.client.host
        return "unknown"

    @staticmethod
    def _sanitize_headers(headers: dict) -> dict:
        return {
            key: "[REDACTED]" if key.lower() in SENSITIVE_HEADERS else value
            for key, value in headers.items()
        }


def get_request_logger(request: Request) -> structlog.BoundLogger:
    """Get a logger bound with the request's id, tenant and user."""
    logger = structlog.get_logger("calendar.request")
    return logger.bind(
        request_id=getattr(request.state, "request_id", "unknown"),
        tenant_id=getattr(request.state, "tenant_id", None),
        user_id=getattr(request.state, "user_id", None),
        path=request.url.path,
    )
