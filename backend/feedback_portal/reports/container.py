"""Wiring of report services from settings and shared clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from feedback_portal.reports.domain.events import ReportEventPublisher
from feedback_portal.reports.domain.models import ReportKind
from feedback_portal.reports.domain.policy import AuthorizationPolicy, build_policy
from feedback_portal.reports.domain.service import ReportService
from feedback_portal.reports.domain.store import InMemoryReportStore, ReportStore
from feedback_portal.reports.infra.postgres_store import PostgresReportStore
from feedback_portal.settings import Settings


@dataclass
class ReportsContainer:
    services: dict[ReportKind, ReportService]
    pool: Any = None
    redis: Any = None
    stores: dict[ReportKind, ReportStore] = field(default_factory=dict)

    def service(self, kind: ReportKind) -> ReportService:
        return self.services[kind]

    async def ensure_schema(self) -> None:
        for store in self.stores.values():
            if isinstance(store, PostgresReportStore):
                await store.ensure_schema()


def _default_stores(config: Settings, pool: Any) -> dict[ReportKind, ReportStore]:
    if config.reports_store == "memory":
        return {kind: InMemoryReportStore() for kind in ReportKind}
    if config.reports_store == "postgres":
        if pool is None:
            raise RuntimeError("postgres report store requires a connection pool")
        return {kind: PostgresReportStore(pool, kind) for kind in ReportKind}
    raise ValueError(f"unknown report store: {config.reports_store}")


def build_container(
    config: Settings,
    *,
    pool: Any = None,
    redis: Any = None,
    stores: Optional[Mapping[ReportKind, ReportStore]] = None,
    policy: Optional[AuthorizationPolicy] = None,
) -> ReportsContainer:
    resolved_stores = dict(stores) if stores is not None else _default_stores(config, pool)
    resolved_policy = policy or build_policy(
        config.reports_authorization_policy,
        admin_role=config.reports_admin_role,
    )
    publisher = ReportEventPublisher(
        redis=redis,
        stream=config.reports_events_stream,
        enabled=config.reports_events_enabled,
    )
    services = {
        kind: ReportService(
            kind=kind,
            store=resolved_stores[kind],
            policy=resolved_policy,
            events=publisher,
            page_size=config.reports_page_size,
            max_skip=config.reports_max_skip,
            strict_sort=config.reports_strict_sort,
        )
        for kind in ReportKind
    }
    return ReportsContainer(services=services, pool=pool, redis=redis, stores=resolved_stores)
