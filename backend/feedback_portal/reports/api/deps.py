"""Request dependencies for the report routers."""

from __future__ import annotations

import json
from typing import Any, Optional

from fastapi import Header, HTTPException, Request, status

from feedback_portal.reports.container import ReportsContainer
from feedback_portal.reports.domain.policy import Principal


def get_container(request: Request) -> ReportsContainer:
    container = getattr(request.app.state, "reports", None)
    if container is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="store_unavailable")
    return container


async def get_principal(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    x_user_roles: Optional[str] = Header(default=None, alias="X-User-Roles"),
) -> Principal:
    """Principal as presented by the caller; the headers are not authenticated."""
    roles = tuple(role.strip() for role in (x_user_roles or "").split(",") if role.strip())
    return Principal(user_id=x_user_id or None, roles=roles)


async def read_json_body(request: Request) -> Any:
    """Parse the body as JSON; an empty or malformed body reads as ``{}``."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except ValueError:
        return {}
