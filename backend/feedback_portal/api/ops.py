"""Operations endpoints: probes and the Prometheus scrape target."""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from feedback_portal.obs import health
from feedback_portal.settings import settings


router = APIRouter(prefix="", tags=["ops"])


async def require_metrics_access(
	x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
	authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
	"""Let scrapes through when metrics are public, else demand the admin token."""
	if settings.obs_metrics_public:
		return
	expected = settings.obs_admin_token
	if not expected:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="admin_token_not_configured")
	provided = x_admin_token
	if not provided and authorization and authorization.lower().startswith("bearer "):
		provided = authorization.split(" ", 1)[1]
	if not provided or not hmac.compare_digest(provided, expected):
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")


@router.get("/health/live")
async def health_live() -> dict[str, str]:
	return await health.liveness()


@router.get("/health/ready")
async def health_ready(request: Request) -> Response:
	container = getattr(request.app.state, "reports", None)
	status_code, payload = await health.readiness(
		getattr(container, "pool", None),
		getattr(container, "redis", None),
	)
	return JSONResponse(content=payload, status_code=status_code)


@router.get("/metrics")
async def prometheus_metrics(_: None = Depends(require_metrics_access)) -> Response:
	return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
