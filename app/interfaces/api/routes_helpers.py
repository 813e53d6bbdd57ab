"""Helper utilities shared across API route handlers."""

import logging

from fastapi import HTTPException, status

from app.domain.errors import DispatchInProgress, UnsupportedChannel

logger = logging.getLogger(__name__)


def to_http_exception(exc: Exception) -> HTTPException:
    """Translate a domain error into the matching HTTP response.

    Validation problems (``ValidationError`` and other ``ValueError``) map to 400.
    """

    if isinstance(exc, LookupError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, DispatchInProgress):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, UnsupportedChannel):
        logger.error("Channel configuration error: %s", exc)
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


__all__ = ["to_http_exception"]
