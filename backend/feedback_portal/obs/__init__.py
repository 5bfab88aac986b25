"""Observability bootstrap: JSON logging plus request instrumentation."""

from __future__ import annotations

from fastapi import FastAPI

from feedback_portal.obs import logging as obs_logging
from feedback_portal.obs import middleware
from feedback_portal.settings import settings


def init(app: FastAPI) -> None:
	"""Configure logging and instrument ``app`` once; a no-op when disabled."""
	if not settings.obs_enabled or getattr(app.state, "obs_initialised", False):
		return
	obs_logging.configure_logging()
	middleware.install(app)
	app.state.obs_initialised = True


__all__ = ["init"]
