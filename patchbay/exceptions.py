"""RFC 9457 problem responses for the patchbay API.

Every failure leaves the app as ``application/problem+json``. Request
validation errors and unexpected exceptions are turned into AudioError first,
so status, title and category always come from ERROR_MAPPINGS. Only routing
errors (unknown path, wrong method) fall back to the plain HTTP status.
"""

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .error_codes import AudioError, ErrorCode
from .models import ErrorResponse, InnerError, InvalidParam

logger = logging.getLogger(__name__)

PROBLEM_JSON_MEDIA_TYPE = "application/problem+json"


def problem_type(error_code: str) -> str:
    """BRIDGE_LAUNCH_FAILED -> /errors/bridge-launch-failed"""
    return "/errors/" + error_code.lower().replace("_", "-")


def _problem(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        media_type=PROBLEM_JSON_MEDIA_TYPE,
    )


def problem_response(
    exc: AudioError, invalid_params: list[InvalidParam] | None = None
) -> JSONResponse:
    """Render an AudioError, including the failing command if recorded."""
    inner_error = InnerError.model_validate(exc.inner_error) if exc.inner_error else None
    body = ErrorResponse(
        type=problem_type(exc.error_code),
        title=exc.title,
        status=exc.http_status,
        detail=exc.message,
        error_code=exc.error_code,
        category=exc.category,
        inner_error=inner_error,
        invalid_params=invalid_params,
    )
    return _problem(exc.http_status, body)


def register_exception_handlers(app: FastAPI) -> None:
    """Register the problem+json handlers on the FastAPI app."""

    @app.exception_handler(AudioError)
    async def audio_error_handler(request: Request, exc: AudioError) -> JSONResponse:
        return problem_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report every rejected field, e.g. ``body.periods``."""
        invalid_params = [
            InvalidParam(name=".".join(str(part) for part in error["loc"]), reason=error["msg"])
            for error in exc.errors()
        ]
        error = AudioError(
            error_code=ErrorCode.VALIDATION_INVALID_REQUEST.value,
            message="; ".join(f"{param.name}: {param.reason}" for param in invalid_params),
        )
        return problem_response(error, invalid_params)

    @app.exception_handler(StarletteHTTPException)
    async def routing_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        try:
            title = HTTPStatus(exc.status_code).phrase
        except ValueError:
            title = f"HTTP {exc.status_code}"
        error_code = f"HTTP_{exc.status_code}"
        body = ErrorResponse(
            type=problem_type(error_code),
            title=title,
            status=exc.status_code,
            detail=str(exc.detail),
            error_code=error_code,
        )
        return _problem(exc.status_code, body)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
        )
        return problem_response(
            AudioError(
                error_code=ErrorCode.INTERNAL_ERROR.value,
                message="Internal server error",
            )
        )
