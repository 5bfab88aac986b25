"""Request ids: accepted from the caller when sane, generated otherwise."""

from __future__ import annotations

import re
import uuid
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from feedback_portal.obs import logging as obs_logging

REQUEST_ID_ATTR = "request_id"
REQUEST_ID_HEADER = "X-Request-Id"

_ACCEPTABLE_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def get_request_id(request: Optional[Request] = None, default: str = "unknown") -> str:
    if request is not None:
        rid = getattr(request.state, REQUEST_ID_ATTR, None)
        if rid:
            return rid
    return obs_logging.current_request_id() or default


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id to ``request.state`` and echo it on the response."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        supplied = request.headers.get(REQUEST_ID_HEADER, "")
        rid = supplied if _ACCEPTABLE_ID.match(supplied) else uuid.uuid4().hex
        setattr(request.state, REQUEST_ID_ATTR, rid)
        response = await call_next(request)
        response.headers.setdefault(REQUEST_ID_HEADER, rid)
        return response
