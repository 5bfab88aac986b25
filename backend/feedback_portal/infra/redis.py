"""Redis connection management.

The client is created once during application startup and handed to whatever
needs it, so tests can pass a fakeredis instance in its place.
"""

from __future__ import annotations

import redis.asyncio as redis

from feedback_portal.settings import Settings


def create_client(config: Settings) -> redis.Redis:
	return redis.from_url(config.redis_url, decode_responses=True)


async def close_client(client: redis.Redis | None) -> None:
	if client is not None:
		await client.aclose()
