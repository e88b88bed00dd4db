"""
API Error Handlers

Translate service errors into `{"message": ...}` responses. Internal detail
is logged server-side and never returned to the client.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import structlog

from pcstore.services.errors import InternalError, StoreError

logger = structlog.get_logger(__name__)


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "request_failed",
        error_kind=type(exc).__name__,
        message=exc.message,
        detail=exc.detail,
        method=request.method,
        path=request.url.path,
    )
    return JSONResponse(status_code=exc.status_code, content={"message": exc.public_message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": [str(part) for part in error["loc"]], "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    logger.info("request_rejected", path=request.url.path, errors=errors)
    return JSONResponse(status_code=400, content={"message": "Invalid request", "errors": errors})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "request_crashed",
        error_type=type(exc).__name__,
        method=request.method,
        path=request.url.path,
    )
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content={"message": error.public_message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
