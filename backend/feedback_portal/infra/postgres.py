"""AsyncPG pool management for the backend."""

from __future__ import annotations

import asyncpg

from feedback_portal.settings import Settings


async def create_pool(config: Settings) -> asyncpg.Pool:
	# Force 127.0.0.1 instead of localhost to avoid IPv6 resolution issues
	dsn = config.postgres_url.replace("localhost", "127.0.0.1")
	pool = await asyncpg.create_pool(
		dsn=dsn,
		min_size=config.postgres_min_pool_size,
		max_size=config.postgres_max_pool_size,
		ssl="require" if config.postgres_ssl else "disable",
	)
	assert pool is not None
	return pool


async def close_pool(pool: asyncpg.Pool | None) -> None:
	if pool is not None:
		await pool.close()
