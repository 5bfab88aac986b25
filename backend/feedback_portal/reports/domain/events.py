"""Report lifecycle events written to a Redis stream."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

from redis.exceptions import RedisError

from feedback_portal.obs import metrics
from feedback_portal.reports.domain.models import ReportKind

logger = logging.getLogger(__name__)

REPORT_CREATED = "report.created"
REPORT_UPDATED = "report.updated"
REPORT_DELETED = "report.deleted"
REPORT_RESOLVED = "report.resolved"
REPORT_REPLIED = "report.replied"


class RedisStreams(Protocol):
    async def xadd(self, name: str, fields: Mapping[str, Any]) -> str:
        ...


@dataclass(slots=True)
class ReportEventPublisher:
    """Appends one entry per successful mutation to ``stream``.

    Publishing happens after the store write, so a failure here is logged and
    counted but never reported back to the caller.
    """

    redis: Optional[RedisStreams]
    stream: str = "reports:events"
    enabled: bool = True

    async def publish(
        self,
        kind: ReportKind,
        event: str,
        report_id: str,
        actor_id: Optional[str] = None,
    ) -> None:
        if not self.enabled or self.redis is None:
            return
        fields = {
            "kind": kind.value,
            "event": event,
            "report_id": report_id,
            "actor_id": actor_id or "",
        }
        try:
            await self.redis.xadd(self.stream, fields)
        except (RedisError, OSError):
            logger.exception(
                "report event publish failed",
                extra={"event": event, "kind": kind.value, "report_id": report_id},
            )
            metrics.record_event_published(kind.value, ok=False)
            return
        metrics.record_event_published(kind.value, ok=True)
