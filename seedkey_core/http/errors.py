"""
HTTP Error Responses
====================
Maps protocol errors to JSON responses with the `{error, message, hint?}`
body clients expect.

Unexpected exceptions are logged with their details and answered with a
generic INTERNAL_ERROR body. Internal details never reach the client.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import structlog

from ..errors import ErrorCode, SeedKeyError
from ..models import ChallengeResult

logger = structlog.get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "An internal error occurred"

# Status codes for failed challenge results, keyed by error
_CHALLENGE_FAILURE_STATUS = {
    ErrorCode.USER_NOT_FOUND.value: 404,
    ErrorCode.USER_EXISTS.value: 409,
}


def seedkey_error_response(exc: SeedKeyError) -> JSONResponse:
    """Render a SeedKeyError with its own status code."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def challenge_failure_response(result: ChallengeResult) -> JSONResponse:
    """Render a failed ChallengeResult (404 unknown key, 409 taken key, else 400)."""
    content = {"error": result.error, "message": result.error}
    if result.hint:
        content["hint"] = result.hint
    return JSONResponse(
        status_code=_CHALLENGE_FAILURE_STATUS.get(result.error, 400),
        content=content,
    )


def internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "error": ErrorCode.INTERNAL_ERROR.value,
            "message": INTERNAL_ERROR_MESSAGE,
        },
    )


async def _handle_seedkey_error(request: Request, exc: SeedKeyError) -> JSONResponse:
    return seedkey_error_response(exc)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Request body rejected", path=request.url.path, errors=len(exc.errors()))
    return seedkey_error_response(
        SeedKeyError(ErrorCode.VALIDATION_ERROR, "Invalid request body")
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unexpected error",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
        exc_info=exc,
    )
    return internal_error_response()


def register_error_handlers(app: FastAPI) -> None:
    """Install the protocol error handlers on an app."""
    app.add_exception_handler(SeedKeyError, _handle_seedkey_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)
