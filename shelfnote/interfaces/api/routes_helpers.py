"""Helper utilities shared across API route handlers."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shelfnote.domain.errors import NotificationError, NotificationValidationError

logger = logging.getLogger(__name__)


def error_response(status_code: int, kind: str, detail: str | None = None) -> JSONResponse:
    """Return the ``{"error": kind, "detail": ...}`` body used for failures."""

    content: dict[str, object] = {"error": kind}
    if detail:
        content["detail"] = detail
    return JSONResponse(status_code=status_code, content=content)


async def _notification_error_handler(request: Request, exc: NotificationError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc.status_code, exc.kind, exc.message)


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in errors
    )
    return error_response(
        status.HTTP_400_BAD_REQUEST, NotificationValidationError.kind, details or None
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map the notification error taxonomy onto HTTP responses."""

    app.add_exception_handler(NotificationError, _notification_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
