"""Liveness and readiness probes for the report stores' backing services."""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import asyncpg
from redis.asyncio import Redis
from redis.exceptions import RedisError

from feedback_portal.obs import metrics

LOGGER = logging.getLogger(__name__)

_PROBE_ERRORS = (asyncio.TimeoutError, OSError, RedisError, asyncpg.PostgresError, asyncpg.InterfaceError)


async def _probe(
	name: str,
	check: Optional[Callable[[], Awaitable[Any]]],
	mark: Callable[..., None],
	timeout: float,
) -> Dict[str, Any]:
	# Memory-backed deployments have no client to probe
	if check is None:
		return {"ok": True, "skipped": True}
	started = perf_counter()
	try:
		await asyncio.wait_for(check(), timeout=timeout)
	except _PROBE_ERRORS as exc:
		mark(False)
		LOGGER.warning("%s readiness check failed", name, exc_info=True)
		return {"ok": False, "error": str(exc) or exc.__class__.__name__}
	latency = perf_counter() - started
	mark(True, latency_seconds=latency)
	return {"ok": True, "latency_ms": round(latency * 1000, 2)}


def _postgres_check(pool: Optional[asyncpg.Pool]) -> Optional[Callable[[], Awaitable[Any]]]:
	if pool is None:
		return None

	async def _select_one() -> Any:
		async with pool.acquire() as conn:
			return await conn.fetchval("SELECT 1")

	return _select_one


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def readiness(pool: Optional[asyncpg.Pool], redis: Optional[Redis]) -> Tuple[int, Dict[str, Any]]:
	postgres_state, redis_state = await asyncio.gather(
		_probe("postgres", _postgres_check(pool), metrics.mark_postgres, timeout=0.3),
		_probe("redis", redis.ping if redis is not None else None, metrics.mark_redis, timeout=0.2),
	)
	ok = postgres_state["ok"] and redis_state["ok"]
	payload = {
		"status": "ok" if ok else "degraded",
		"checks": {"postgres": postgres_state, "redis": redis_state},
	}
	return (200 if ok else 503), payload
