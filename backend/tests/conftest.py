import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from feedback_portal.main import app
from feedback_portal.reports.container import build_container
from feedback_portal.settings import Settings, settings


@pytest.fixture
def test_settings() -> Settings:
	"""Settings copy using the in-memory store and stream events."""
	return settings.model_copy(
		update={
			"reports_store": "memory",
			"reports_events_enabled": True,
			"reports_authorization_policy": "open",
			"reports_strict_sort": False,
		}
	)


@pytest_asyncio.fixture
async def fake_redis():
	client = FakeRedis(decode_responses=True)
	try:
		yield client
	finally:
		await client.flushall()
		await client.aclose()


@pytest_asyncio.fixture
async def reports_container(test_settings, fake_redis):
	container = build_container(test_settings, redis=fake_redis)
	original = getattr(app.state, "reports", None)
	app.state.reports = container
	try:
		yield container
	finally:
		app.state.reports = original


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Keep metrics reachable without an admin token during tests."""
	original_public = settings.obs_metrics_public
	settings.obs_metrics_public = True
	try:
		yield
	finally:
		settings.obs_metrics_public = original_public


@pytest_asyncio.fixture
async def api_client(reports_container):
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
