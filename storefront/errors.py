"""Error taxonomy for the storefront API and its JSON rendering."""

from __future__ import annotations

import logging
from typing import Dict

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .storage import StorageError

logger = logging.getLogger("storefront.api")

INVALID_PAYLOAD_MESSAGE = "البيانات المرسلة غير صالحة"
SERVER_ERROR_MESSAGE = "حدث خطأ في الخادم، حاول مرة أخرى"


class StorefrontError(Exception):
    """Base class for errors that terminate a request with a JSON body."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, object]:
        return {"error": self.message}


class BadRequest(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(StorefrontError):
    """Missing, expired or invalid credentials.

    ``revoked`` marks sessions whose access code was deleted while they were
    live; clients must log out instead of retrying.
    """

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str, *, revoked: bool = False) -> None:
        super().__init__(message)
        self.revoked = revoked

    def to_payload(self) -> Dict[str, object]:
        payload = super().to_payload()
        if self.revoked:
            payload["revoked"] = True
        return payload


class Forbidden(StorefrontError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(StorefrontError):
    status_code = status.HTTP_409_CONFLICT


def register_exception_handlers(app: FastAPI) -> None:
    """Render the error taxonomy as ``{"error": ...}`` JSON responses."""

    @app.exception_handler(StorefrontError)
    async def handle_storefront_error(_: Request, exc: StorefrontError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": INVALID_PAYLOAD_MESSAGE, "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("Storage failure while serving %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": SERVER_ERROR_MESSAGE},
        )


__all__ = [
    "BadRequest",
    "Conflict",
    "Forbidden",
    "NotFound",
    "StorefrontError",
    "Unauthorized",
    "register_exception_handlers",
]
