import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ShortenerError(Exception):
    status_code = 500
    reason = "Internal Server Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(ShortenerError):
    status_code = 404
    reason = "Not Found"


class AliasConflict(ShortenerError):
    status_code = 409
    reason = "Conflict"


class ValidationError(ShortenerError, ValueError):
    """Malformed URL, alias or topic. Also a ValueError so pydantic validators can raise it."""

    status_code = 400
    reason = "Validation Error"


class GenerationExhausted(ShortenerError):
    status_code = 500
    reason = "Internal Server Error"


class DependencyUnavailable(ShortenerError):
    status_code = 503
    reason = "Service Unavailable"


async def shortener_error_handler(request: Request, exc: ShortenerError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.reason, "message": exc.message},
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "error": "Validation Error",
            "message": "Invalid input data",
            "details": jsonable_encoder(exc.errors()),
        },
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(ShortenerError, shortener_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
