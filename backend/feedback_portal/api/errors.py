"""Exception handlers that stamp every error body with the request id."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from feedback_portal.api.request_id import get_request_id


def error_response(
    request: Request,
    status_code: int,
    detail: Any,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    body = {"detail": detail, "request_id": get_request_id(request)}
    return JSONResponse(status_code=status_code, content=body, headers=dict(headers) if headers else None)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        return error_response(request, exc.status_code, exc.detail, getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        # Malformed query or path values are rejected like any other bad request
        return error_response(request, status.HTTP_400_BAD_REQUEST, "request_rejected")
