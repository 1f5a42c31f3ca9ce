"""Map domain errors onto HTTP responses."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.logging import get_logger
from app.modules.billing import BillingError
from app.modules.flashcards.errors import (
    FlashcardError,
    FlashcardNotFoundError,
    FlashcardValidationError,
    PersistenceError,
    ProviderError,
    ProviderTimeoutError,
)

logger = get_logger(__name__)

_STATUS: list[tuple[type[Exception], int]] = [
    (FlashcardValidationError, 422),
    (ProviderTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (ProviderError, status.HTTP_502_BAD_GATEWAY),
    (FlashcardNotFoundError, status.HTTP_404_NOT_FOUND),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (BillingError, status.HTTP_400_BAD_REQUEST),
]


def status_for(exc: Exception) -> int:
    for exc_type, code in _STATUS:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def _handle(request: Request, exc: Exception) -> JSONResponse:
    code = status_for(exc)
    kind = getattr(exc, "kind", "error")
    if code >= 500:
        logger.warning(
            f"{request.method} {request.url.path} failed: {kind}: {exc}",
            extra={"request_id": getattr(request.state, "request_id", "-")},
        )
    return JSONResponse(status_code=code, content={"detail": str(exc), "error": kind})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FlashcardError, _handle)
    app.add_exception_handler(BillingError, _handle)
