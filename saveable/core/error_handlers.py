"""
Error handlers mapping saveable exceptions onto the JSON envelope used by the API.
"""

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
from typing import Dict, Any, Optional

from saveable.core.exceptions import SaveableException, ErrorCode

logger = logging.getLogger(__name__)


class ErrorHandler:
    """Builds envelope responses for saveable, validation and HTTP errors."""

    async def handle_saveable_exception(
        self,
        request: Request,
        exc: SaveableException
    ) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            f"SaveableException: {exc.message}",
            extra={
                'error_code': exc.error_code.value,
                'status_code': exc.status_code,
                'details': exc.details,
                'request_path': request.url.path,
                'request_method': request.method,
            }
        )
        return self._create_error_response(
            error_code=exc.error_code.value,
            message=exc.message,
            details=exc.details,
            status_code=exc.status_code
        )

    async def handle_validation_error(
        self,
        request: Request,
        exc: RequestValidationError
    ) -> JSONResponse:
        validation_errors = [
            {
                'field': '.'.join(str(loc) for loc in error['loc']),
                'message': error['msg'],
                'type': error['type'],
            }
            for error in exc.errors()
        ]
        logger.warning(
            "Request validation failed",
            extra={'validation_errors': validation_errors, 'request_path': request.url.path}
        )
        return self._create_error_response(
            error_code="VALIDATION_ERROR",
            message="Request validation failed",
            details={'validation_errors': validation_errors},
            status_code=422
        )

    async def handle_http_exception(
        self,
        request: Request,
        exc: HTTPException
    ) -> JSONResponse:
        error_code = ErrorCode.NOT_FOUND.value if exc.status_code == 404 else f"HTTP_{exc.status_code}"
        logger.warning(
            f"HTTP exception: {exc.status_code} - {exc.detail}",
            extra={
                'status_code': exc.status_code,
                'detail': exc.detail,
                'request_path': request.url.path
            }
        )
        return self._create_error_response(
            error_code=error_code,
            message=str(exc.detail),
            status_code=exc.status_code
        )

    def _create_error_response(
        self,
        error_code: str,
        message: str,
        status_code: int,
        details: Optional[Dict[str, Any]] = None
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content={
                "status": "error",
                "data": None,
                "error": message,
                "error_code": error_code,
                "details": details or {},
            }
        )


# Global error handler instance
error_handler = ErrorHandler()


def setup_error_handlers(app):
    """
    Set up all error handlers for the FastAPI application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(SaveableException)
    async def saveable_exception_handler(request: Request, exc: SaveableException):
        return await error_handler.handle_saveable_exception(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return await error_handler.handle_validation_error(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        fastapi_exc = HTTPException(status_code=exc.status_code, detail=exc.detail)
        return await error_handler.handle_http_exception(request, fastapi_exc)
