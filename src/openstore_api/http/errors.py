"""Shared error helpers for the store HTTP API."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from openstore_api.errors import StoreError, StoreValidationError

LOGGER = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "There was an error processing your request, please try again later"

_STATUS_ERROR_CODES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "bad_request",
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "internal_error",
    status.HTTP_503_SERVICE_UNAVAILABLE: "unavailable",
}


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: str
    kind: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool = True
    data: Any = None
    message: str = ""


def error_payload(
    message: str,
    *,
    error: Optional[str] = None,
    status_code: Optional[int] = None,
    kind: Optional[str] = None,
) -> dict[str, Any]:
    resolved_error = error or _STATUS_ERROR_CODES.get(status_code or 0, "error")
    return ErrorResponse(error=resolved_error, message=message, kind=kind).model_dump(exclude_none=True)


def success_payload(data: Any, message: str = "") -> dict[str, Any]:
    return SuccessResponse(data=data, message=message).model_dump()


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    kind = exc.kind.value if isinstance(exc, StoreValidationError) else None
    if exc.status_code >= 500:
        LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(exc.message, error=exc.error, status_code=exc.status_code, kind=kind),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_payload("Invalid request", status_code=status.HTTP_400_BAD_REQUEST),
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload(GENERIC_ERROR_MESSAGE, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)


__all__ = [
    "ErrorResponse",
    "GENERIC_ERROR_MESSAGE",
    "SuccessResponse",
    "error_payload",
    "install_error_handlers",
    "success_payload",
]
