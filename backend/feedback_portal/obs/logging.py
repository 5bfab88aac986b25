"""JSON logging with request-scoped context.

Each line is one JSON object. Fields bound with :func:`bind_context` (request
id, route, client address, user id) are attached to every record emitted while
the request is in flight; ``extra`` values are copied after redaction.
"""

from __future__ import annotations

import json
import logging
import random
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from feedback_portal.settings import settings

_LOGGER_NAME = "feedback_portal"

_CONTEXT: ContextVar[Mapping[str, str]] = ContextVar("feedback_portal_log_context", default={})

# Report text and caller-supplied identity objects never reach the logs
_REDACTED_KEYS = ("description", "reply", "content", "replied_by", "token", "authorization", "password")

_MAX_TEXT = 200
_MAX_ITEMS = 10

_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}


def bind_context(**fields: Optional[str]) -> Token:
	"""Merge ``fields`` into the log context; pass the token to :func:`reset_context`."""
	merged = dict(_CONTEXT.get())
	merged.update({key: value for key, value in fields.items() if value is not None})
	return _CONTEXT.set(merged)


def reset_context(token: Token) -> None:
	_CONTEXT.reset(token)


def current_request_id() -> Optional[str]:
	return _CONTEXT.get().get("request_id")


def _redact(key: str, value: Any) -> Any:
	lowered = key.lower()
	if any(marker in lowered for marker in _REDACTED_KEYS):
		return "[redacted]"
	return _clip(value)


def _clip(value: Any) -> Any:
	if isinstance(value, str) and len(value) > _MAX_TEXT:
		return value[:_MAX_TEXT] + "…"
	if isinstance(value, Mapping):
		return {str(k): _redact(str(k), v) for k, v in list(value.items())[:_MAX_ITEMS]}
	if isinstance(value, (list, tuple, set)):
		return [_clip(item) for item in list(value)[:_MAX_ITEMS]]
	return value


class JSONLogFormatter(logging.Formatter):
	def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (match logging api)
		payload: Dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"logger": record.name,
			"msg": record.getMessage(),
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		payload.update(_CONTEXT.get())
		for key, value in record.__dict__.items():
			if key not in _RECORD_ATTRS and key not in payload:
				payload[key] = _redact(key, value)
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		return json.dumps(payload, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Drop a share of INFO records; every other level passes."""

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO:
			return True
		rate = settings.obs_log_sampling_rate_info
		return rate >= 1.0 or random.random() < max(rate, 0.0)


def configure_logging() -> logging.Logger:
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter())
	root = logging.getLogger()
	root.handlers.clear()
	root.addHandler(handler)
	root.setLevel(settings.obs_log_level.upper())
	return logging.getLogger(_LOGGER_NAME)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _LOGGER_NAME)
