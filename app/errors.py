from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class OrderingError(Exception):
    """Base class for failures of a resequencing operation.

    Raising one of these guarantees nothing was written for the owner.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    code = "ordering_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NoteNotFoundError(OrderingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class InvalidOrderError(OrderingError):
    status_code = 422
    code = "invalid_input"


class StaleNoteSetError(OrderingError):
    """The caller's view of the owner's note set is out of date."""

    status_code = status.HTTP_409_CONFLICT
    code = "stale_state"


def error_payload(message: str, code: str) -> dict[str, str]:
    return {"detail": message, "code": code}


async def handle_ordering_error(request: Request, exc: OrderingError) -> JSONResponse:
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(status_code=exc.status_code, content=error_payload(exc.message, exc.code))


async def handle_storage_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error_payload("Storage temporarily unavailable", "transient"),
    )
