import pytest
from httpx import AsyncClient

from feedback_portal.reports.container import build_container
from feedback_portal.reports.domain.models import ReportKind
from feedback_portal.reports.domain.policy import RolePolicy
from feedback_portal.reports.domain.store import InMemoryReportStore, StoreError


class UnavailableStore(InMemoryReportStore):
	async def find_many(self, report_filter, *, ascending, skip, limit):
		raise StoreError("find_many")


async def _create_feedback(client: AsyncClient, submitter: str = "u1", description: str = "Great meeting") -> str:
	response = await client.post(
		"/api/feedback/create-report",
		json={"description": description, "user": {"id": submitter}},
	)
	assert response.status_code == 200
	return response.json()["id"]


def _assert_rejected(response) -> None:
	assert response.status_code == 400
	body = response.json()
	assert body["detail"] == "request_rejected"
	assert body["request_id"]


@pytest.mark.asyncio
async def test_feedback_create_and_fetch(api_client: AsyncClient):
	report_id = await _create_feedback(api_client)

	response = await api_client.get(f"/api/feedback/get-report/{report_id}")
	assert response.status_code == 200
	report = response.json()["report"]
	assert report["id"] == report_id
	assert report["description"] == "Great meeting"
	assert report["submitterId"] == "u1"
	assert report["resolved"] is False
	assert report["replies"] == []
	assert "townhallId" not in report


@pytest.mark.asyncio
async def test_bug_create_requires_townhall(api_client: AsyncClient):
	missing = await api_client.post(
		"/api/bugs/create-report",
		json={"description": "Audio drops", "user": {"id": "u1"}},
	)
	_assert_rejected(missing)

	created = await api_client.post(
		"/api/bugs/create-report",
		json={"description": "Audio drops", "townhallId": "th-1", "user": {"id": "u1"}},
	)
	assert created.status_code == 200
	fetched = await api_client.get(f"/api/bugs/get-report/{created.json()['id']}")
	assert fetched.json()["report"]["townhallId"] == "th-1"


@pytest.mark.asyncio
async def test_malformed_body_is_rejected(api_client: AsyncClient):
	response = await api_client.post(
		"/api/feedback/create-report",
		content=b"{not json",
		headers={"Content-Type": "application/json"},
	)
	_assert_rejected(response)

	empty = await api_client.post("/api/feedback/create-report")
	_assert_rejected(empty)


@pytest.mark.asyncio
async def test_kinds_are_stored_separately(api_client: AsyncClient):
	report_id = await _create_feedback(api_client)
	_assert_rejected(await api_client.get(f"/api/bugs/get-report/{report_id}"))


@pytest.mark.asyncio
async def test_missing_report_is_rejected(api_client: AsyncClient):
	_assert_rejected(await api_client.get("/api/feedback/get-report/unknown-id"))


@pytest.mark.asyncio
async def test_list_reports_paging_and_filters(api_client: AsyncClient):
	for index in range(11):
		await _create_feedback(api_client, description=f"report {index}")

	first = await api_client.get("/api/feedback/get-reports")
	assert first.status_code == 200
	assert first.json()["count"] == 11
	assert len(first.json()["reports"]) == 10
	assert first.json()["reports"][0]["description"] == "report 10"

	second = await api_client.get("/api/feedback/get-reports", params={"page": "2abc", "sortByDate": "true"})
	assert second.status_code == 200
	assert [report["description"] for report in second.json()["reports"]] == ["report 10"]

	garbage = await api_client.get("/api/feedback/get-reports", params={"page": "abc", "ascending": "true"})
	assert garbage.status_code == 200
	assert garbage.json()["reports"][0]["description"] == "report 0"

	negative = await api_client.get("/api/feedback/get-reports", params={"page": "-99999999999999999999999"})
	assert negative.status_code == 200
	assert len(negative.json()["reports"]) == 10

	_assert_rejected(await api_client.get("/api/feedback/get-reports", params={"page": "9" * 40}))

	unresolved = await api_client.get("/api/feedback/get-reports", params={"resolved": "false"})
	assert unresolved.json()["count"] == 11
	resolved = await api_client.get("/api/feedback/get-reports", params={"resolved": "true"})
	assert resolved.json() == {"reports": [], "count": 0}
	_assert_rejected(await api_client.get("/api/feedback/get-reports", params={"resolved": "maybe"}))


@pytest.mark.asyncio
async def test_list_by_submitter_reads_identity_from_body(api_client: AsyncClient):
	await _create_feedback(api_client, submitter="alice")
	await _create_feedback(api_client, submitter="bob")

	own = await api_client.request("GET", "/api/feedback/get-reports/alice", json={"user": {"id": "alice"}})
	assert own.status_code == 200
	assert own.json()["count"] == 1
	assert own.json()["reports"][0]["submitterId"] == "alice"

	other = await api_client.request("GET", "/api/feedback/get-reports/alice", json={"user": {"id": "bob"}})
	_assert_rejected(other)

	_assert_rejected(await api_client.get("/api/feedback/get-reports/alice"))


@pytest.mark.asyncio
async def test_update_and_delete_are_owner_only(api_client: AsyncClient):
	report_id = await _create_feedback(api_client, submitter="owner")

	foreign = await api_client.post(
		"/api/feedback/update-report",
		json={"id": report_id, "newDescription": "hijacked", "user": {"id": "intruder"}},
	)
	_assert_rejected(foreign)

	updated = await api_client.post(
		"/api/feedback/update-report",
		json={"Id": report_id, "newDescription": "Edited", "user": {"_id": "owner"}},
	)
	assert updated.json() == {"ok": True}
	fetched = await api_client.get(f"/api/feedback/get-report/{report_id}")
	assert fetched.json()["report"]["description"] == "Edited"

	_assert_rejected(
		await api_client.post("/api/feedback/delete-report", json={"id": report_id, "user": {"id": "intruder"}})
	)
	deleted = await api_client.post("/api/feedback/delete-report", json={"id": report_id, "user": {"id": "owner"}})
	assert deleted.json() == {"ok": True}
	_assert_rejected(await api_client.get(f"/api/feedback/get-report/{report_id}"))


@pytest.mark.asyncio
async def test_resolve_and_reply(api_client: AsyncClient):
	report_id = await _create_feedback(api_client)

	_assert_rejected(
		await api_client.post("/api/feedback/set-resolved-status", json={"id": report_id, "resolvedStatus": "true"})
	)
	resolved = await api_client.post(
		"/api/feedback/set-resolved-status",
		json={"id": report_id, "resolvedStatus": True},
	)
	assert resolved.json() == {"ok": True}

	reply = await api_client.post(
		"/api/feedback/add-reply",
		json={"id": report_id, "replyContent": "Thanks!", "user": {"id": "admin", "name": "Ada"}},
	)
	assert reply.json() == {"ok": True}

	report = (await api_client.get(f"/api/feedback/get-report/{report_id}")).json()["report"]
	assert report["resolved"] is True
	assert report["replies"][0]["content"] == "Thanks!"
	assert report["replies"][0]["repliedBy"] == {"id": "admin", "name": "Ada"}
	assert report["replies"][0]["repliedDate"]

	_assert_rejected(
		await api_client.post(
			"/api/feedback/add-reply",
			json={"id": "missing", "replyContent": "hello", "user": {"id": "admin"}},
		)
	)


@pytest.mark.asyncio
async def test_mutations_publish_stream_events(api_client: AsyncClient, fake_redis):
	report_id = await _create_feedback(api_client, submitter="u9")
	entries = await fake_redis.xrange("reports:events")
	assert entries[-1][1] == {"kind": "feedback", "event": "report.created", "report_id": report_id, "actor_id": "u9"}


@pytest.mark.asyncio
async def test_role_policy_gates_admin_routes(api_client: AsyncClient, test_settings):
	from feedback_portal.main import app

	app.state.reports = build_container(
		test_settings,
		stores={kind: InMemoryReportStore() for kind in ReportKind},
		policy=RolePolicy("admin"),
	)
	report_id = await _create_feedback(api_client)

	_assert_rejected(await api_client.get("/api/feedback/get-reports"))
	allowed = await api_client.get("/api/feedback/get-reports", headers={"X-User-Roles": "member, admin"})
	assert allowed.status_code == 200

	payload = {"id": report_id, "resolvedStatus": True}
	_assert_rejected(await api_client.post("/api/feedback/set-resolved-status", json=payload))
	ok = await api_client.post("/api/feedback/set-resolved-status", json=payload, headers={"X-User-Roles": "admin"})
	assert ok.json() == {"ok": True}


@pytest.mark.asyncio
async def test_store_outage_maps_to_503(api_client: AsyncClient, test_settings):
	from feedback_portal.main import app

	app.state.reports = build_container(
		test_settings,
		stores={kind: UnavailableStore() for kind in ReportKind},
	)
	response = await api_client.get("/api/bugs/get-reports")
	assert response.status_code == 503
	assert response.json()["detail"] == "store_unavailable"


@pytest.mark.asyncio
async def test_request_id_is_echoed(api_client: AsyncClient):
	response = await api_client.get("/api/feedback/get-report/nope", headers={"X-Request-Id": "req-123"})
	assert response.headers["X-Request-Id"] == "req-123"
	assert response.json()["request_id"] == "req-123"
