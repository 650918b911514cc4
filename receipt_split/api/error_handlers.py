"""Map service errors to HTTP responses.

Registered in ``create_app``. Request-body schema violations return 400
like every other validation failure, not FastAPI's default 422.
"""

import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from receipt_split.core.errors import CrossReferenceError, NotFoundError, PersistenceError, ValidationError

logger = logging.getLogger(__name__)


def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation error",
            "details": jsonable_encoder(exc.errors()),
        },
    )


def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content={"error": "Validation error", "field": exc.field, "message": exc.message},
    )


def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=HTTP_404_NOT_FOUND, content={"error": "Not found", "message": str(exc)})


def cross_reference_handler(request: Request, exc: CrossReferenceError):
    # the assignment route reports a cross-receipt pair as not found
    return JSONResponse(status_code=HTTP_404_NOT_FOUND, content={"error": "Not found", "message": str(exc)})


def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "details": str(exc)},
    )


def generic_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "details": str(exc)},
    )


def register_error_handlers(app) -> None:
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(CrossReferenceError, cross_reference_handler)
    app.add_exception_handler(PersistenceError, persistence_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
