"""FastAPI application for bug and feedback reports."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from feedback_portal.api import ops
from feedback_portal.api.errors import install_error_handlers
from feedback_portal.api.request_id import RequestIdMiddleware
from feedback_portal.infra import postgres
from feedback_portal.infra import redis as redis_infra
from feedback_portal.obs import init as obs_init
from feedback_portal.reports.api.routes import bugs_router, feedback_router
from feedback_portal.reports.container import build_container
from feedback_portal.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	pool = None
	redis_client = None
	if settings.reports_store == "postgres":
		pool = await postgres.create_pool(settings)
	if settings.reports_events_enabled:
		redis_client = redis_infra.create_client(settings)
	try:
		container = build_container(settings, pool=pool, redis=redis_client)
		await container.ensure_schema()
		app.state.reports = container
		logger.info(
			"reports service started",
			extra={"store": settings.reports_store, "events": settings.reports_events_enabled},
		)
		yield
	finally:
		app.state.reports = None
		await redis_infra.close_client(redis_client)
		await postgres.close_pool(pool)


app = FastAPI(title="Feedback Portal Reports", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True
if "*" in allow_origins:
	allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

obs_init(app)

# Ensure every request carries an X-Request-Id and make it available on request.state
app.add_middleware(RequestIdMiddleware)

app.include_router(ops.router, tags=["ops"])
app.include_router(bugs_router)
app.include_router(feedback_router)
