"""
Global Error Handlers for OneShot
Every error leaves the API as {error, detail, path, ...}.
"""

import logging
import math
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import Settings
from exceptions import OneShotException

logger = logging.getLogger(__name__)


def _request_context(request: Request) -> Dict[str, Any]:
    return {"path": str(request.url.path), "method": request.method}


def _error_response(
    request: Request,
    status_code: int,
    content: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={**content, "path": str(request.url.path)},
        headers=headers
    )


def _retry_after_header(exc: OneShotException) -> Optional[Dict[str, str]]:
    """Whole seconds, rounded up, for errors that carry a retry delay"""
    retry_after = exc.details.get("retry_after_seconds")
    if retry_after is None:
        return None
    return {"Retry-After": str(max(1, math.ceil(retry_after)))}


def setup_error_handlers(app: FastAPI, settings: Settings) -> None:
    """
    Register global exception handlers on the FastAPI app.

    Args:
        app: FastAPI application instance
        settings: Settings controlling how much detail 500s expose
    """

    @app.exception_handler(OneShotException)
    async def oneshot_exception_handler(request: Request, exc: OneShotException) -> JSONResponse:
        level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
        logger.log(
            level,
            f"{exc.code}: {exc.message}",
            extra={**_request_context(request), "code": exc.code,
                   "status_code": exc.status_code, "details": exc.details}
        )
        return _error_response(request, exc.status_code, exc.to_dict(), _retry_after_header(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        logger.warning(
            f"HTTP {exc.status_code}: {exc.detail}",
            extra={**_request_context(request), "status_code": exc.status_code}
        )
        return _error_response(
            request, exc.status_code, {"error": "HTTP_ERROR", "detail": exc.detail}
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        validation_errors = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", "Validation error"),
                "type": err.get("type", "unknown"),
            }
            for err in exc.errors()
        ]
        logger.warning(
            f"Invalid request body for {request.url.path}",
            extra={**_request_context(request), "errors": validation_errors}
        )
        return _error_response(request, 422, {
            "error": "VALIDATION_ERROR",
            "detail": "Request validation failed",
            "validation_errors": validation_errors,
        })

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            f"Unhandled {type(exc).__name__}: {exc}",
            exc_info=True,
            extra={**_request_context(request), "exception_type": type(exc).__name__}
        )

        content = {
            "error": "INTERNAL_SERVER_ERROR",
            "detail": str(exc) if settings.DEBUG else "An unexpected error occurred",
        }
        if settings.DEBUG:
            content["traceback"] = traceback.format_exc()
        return _error_response(request, 500, content)
