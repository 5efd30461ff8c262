"""Exception handlers producing the failure envelope."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from warbler.schemas import ErrorResponse
from warbler.services.mail import MailDeliveryError

logger = logging.getLogger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "


def failure(code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    body = ErrorResponse(code=code, message=message).model_dump(by_alias=True)
    return JSONResponse(status_code=code, content=body, headers=headers)


def validation_message(exc: RequestValidationError) -> str:
    """Join the field error messages of a validation failure."""

    messages: list[str] = []
    for error in exc.errors():
        message = str(error.get("msg", "Invalid value")).removeprefix(_VALUE_ERROR_PREFIX)
        if error.get("type") in {"missing", "string_type", "int_parsing", "bool_parsing"}:
            location = ".".join(str(part) for part in error.get("loc", ())[1:])
            message = f"{location}: {message}" if location else message
        if message not in messages:
            messages.append(message)
    return ". ".join(messages) or "Validation failed"


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return failure(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return failure(status.HTTP_422_UNPROCESSABLE_ENTITY, validation_message(exc))


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    method = request.scope.get("method", "WEBSOCKET")
    logger.exception("Unhandled error while processing %s %s", method, request.url.path)
    return failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(MailDeliveryError, internal_error_handler)
    app.add_exception_handler(SQLAlchemyError, internal_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)
