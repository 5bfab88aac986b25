"""Request instrumentation: log context, latency metrics and an access log line."""

from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from feedback_portal.api.request_id import REQUEST_ID_ATTR
from feedback_portal.obs import logging as obs_logging
from feedback_portal.obs import metrics

_access_log = obs_logging.get_logger("feedback_portal.http")


def _route_label(request: Request) -> str:
	# Templated path keeps metric cardinality bounded (/get-report/{report_id})
	route = request.scope.get("route")
	return getattr(route, "path", None) or request.url.path


class ObservabilityMiddleware(BaseHTTPMiddleware):
	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		client = request.client
		token = obs_logging.bind_context(
			request_id=getattr(request.state, REQUEST_ID_ATTR, None) or request.headers.get("X-Request-Id"),
			route=request.url.path,
			client_ip=client.host if client else None,
			user_id=request.headers.get("X-User-Id"),
		)
		started = time.perf_counter()
		status_code = 500
		try:
			response = await call_next(request)
			status_code = response.status_code
			return response
		except Exception:
			_access_log.exception("http_request_error", extra={"method": request.method})
			raise
		finally:
			elapsed = time.perf_counter() - started
			route = _route_label(request)
			metrics.observe_request(route, request.method, status_code, elapsed)
			_access_log.info(
				"http_request",
				extra={
					"method": request.method,
					"status": status_code,
					"latency_ms": round(elapsed * 1000, 3),
					"route_template": route,
				},
			)
			obs_logging.reset_context(token)


def install(app) -> None:
	app.add_middleware(ObservabilityMiddleware)
