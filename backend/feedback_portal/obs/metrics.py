"""Prometheus metrics for the reports service."""

from __future__ import annotations

from typing import Optional

from prometheus_client import Counter, Gauge, Histogram

HTTP_REQUESTS = Counter(
	"feedback_portal_http_requests_total",
	"HTTP requests by templated route, method and status code",
	["route", "method", "status"],
)

HTTP_LATENCY = Histogram(
	"feedback_portal_http_request_duration_seconds",
	"Time spent handling an HTTP request",
	["route", "method"],
	buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

REPORT_OPERATIONS = Counter(
	"reports_operations_total",
	"Report service calls by kind, operation and outcome (ok or failure code)",
	["kind", "operation", "outcome"],
)

REPORT_EVENTS_PUBLISHED = Counter(
	"reports_events_published_total",
	"Report lifecycle events written to the events stream",
	["kind", "result"],
)

DEPENDENCY_UP = Gauge(
	"feedback_portal_dependency_up",
	"Outcome of the last readiness probe (1 ok, 0 failing)",
	["dependency"],
)

DEPENDENCY_LATENCY = Gauge(
	"feedback_portal_dependency_probe_seconds",
	"Latency of the last successful readiness probe",
	["dependency"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	HTTP_REQUESTS.labels(route=route, method=method, status=str(status)).inc()
	HTTP_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def record_report_operation(kind: str, operation: str, outcome: str) -> None:
	REPORT_OPERATIONS.labels(kind=kind, operation=operation, outcome=outcome).inc()


def record_event_published(kind: str, *, ok: bool) -> None:
	REPORT_EVENTS_PUBLISHED.labels(kind=kind, result="ok" if ok else "error").inc()


def _mark(dependency: str, ok: bool, latency_seconds: Optional[float]) -> None:
	DEPENDENCY_UP.labels(dependency=dependency).set(1 if ok else 0)
	if latency_seconds is not None:
		DEPENDENCY_LATENCY.labels(dependency=dependency).set(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: Optional[float] = None) -> None:
	_mark("postgres", ok, latency_seconds)


def mark_redis(ok: bool, *, latency_seconds: Optional[float] = None) -> None:
	_mark("redis", ok, latency_seconds)
