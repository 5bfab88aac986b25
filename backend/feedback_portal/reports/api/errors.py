"""Translate report results into HTTP responses."""

from __future__ import annotations

from typing import TypeVar

from fastapi import HTTPException, status

from feedback_portal.reports.domain.results import Err, Result, is_client_error

T = TypeVar("T")

REQUEST_REJECTED = "request_rejected"
STORE_UNAVAILABLE = "store_unavailable"


def unwrap(result: Result[T]) -> T:
    """Return the value of ``result`` or raise the matching HTTP error.

    Validation, not-found, not-authorized and client-fault store failures all
    collapse into one 400 so callers cannot probe which reports exist.
    """
    if isinstance(result, Err):
        if is_client_error(result.failure):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=REQUEST_REJECTED)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STORE_UNAVAILABLE)
    return result.value
