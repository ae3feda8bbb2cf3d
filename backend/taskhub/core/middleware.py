"""
HTTP middleware: one structured log event per request, and a catch-all
error handler that logs the stack trace and hides it from the client.
"""

from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from taskhub.core.logging import REQUEST_LOGGER, get_logger

logger = get_logger(REQUEST_LOGGER)


def install_middleware(app: FastAPI) -> None:
    """Attach request logging and the unexpected-error handler to `app`."""

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        # A request that raises is answered 500 by the outer error handler.
        status_code = 500
        response_length = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            response_length = response.headers.get("content-length")
            return response
        finally:
            logger.info(
                "Request handled",
                method=request.method,
                path=request.url.path,
                status=status_code,
                response_length=response_length,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                remote_addr=request.client.host if request.client else None,
                user_agent=request.headers.get("user-agent"),
            )

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled error",
            method=request.method,
            path=request.url.path,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"error": "An unexpected error occurred"})
