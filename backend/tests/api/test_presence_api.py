from unittest.mock import AsyncMock

import pytest

from collabhub import main
from collabhub.domain.collab.models import Connection
from collabhub.domain.identity import Identity
from collabhub.infra import jwt as jwt_helper
from collabhub.infra.auth import get_current_identity, get_resolver
from collabhub.settings import settings

ALICE = Identity(user_id="user-a", display_name="Alice")


@pytest.fixture
def as_alice():
	main.app.dependency_overrides[get_current_identity] = lambda: ALICE
	try:
		yield ALICE
	finally:
		main.app.dependency_overrides.pop(get_current_identity, None)


@pytest.fixture
def hub(monkeypatch):
	namespace = main.collab_namespace
	monkeypatch.setattr(namespace, "emit", AsyncMock())
	monkeypatch.setattr(namespace, "enter_room", AsyncMock())
	monkeypatch.setattr(namespace, "leave_room", AsyncMock())
	yield namespace
	namespace.presence.leave_all("sid-a")


@pytest.mark.asyncio
async def test_presence_requires_authentication(api_client):
	response = await api_client.get("/rooms/R/presence")
	assert response.status_code == 401


@pytest.mark.asyncio
async def test_presence_rejects_token_for_unknown_user(api_client):
	class NoUsers:
		async def resolve(self, token):
			from collabhub.domain.identity import Unauthenticated

			raise Unauthenticated("unknown_user")

	main.app.dependency_overrides[get_resolver] = lambda: NoUsers()
	try:
		response = await api_client.get(
			"/rooms/R/presence",
			headers={"Authorization": f"Bearer {jwt_helper.encode_access('ghost')}"},
		)
	finally:
		main.app.dependency_overrides.pop(get_resolver, None)
	assert response.status_code == 401
	assert response.json()["detail"] == "invalid_token"


@pytest.mark.asyncio
async def test_presence_lists_room_members(api_client, as_alice, hub):
	await hub.membership.handle_join(Connection(sid="sid-a", identity=ALICE), "R")

	response = await api_client.get("/rooms/R/presence")

	assert response.status_code == 200
	assert response.json() == {
		"roomId": "R",
		"count": 1,
		"members": [{"userId": "user-a", "userName": "Alice", "socketId": "sid-a"}],
	}


@pytest.mark.asyncio
async def test_presence_of_empty_room(api_client, as_alice, hub):
	response = await api_client.get("/rooms/empty/presence")
	assert response.json() == {"roomId": "empty", "count": 0, "members": []}


@pytest.mark.asyncio
async def test_task_event_requires_internal_secret(api_client, monkeypatch, hub):
	monkeypatch.setattr(settings, "service_signing_key", "svc-secret")
	response = await api_client.post("/projects/p1/tasks/events", json={"event": "task-created", "task": {"id": "t1"}})
	assert response.status_code == 403
	hub.emit.assert_not_awaited()


@pytest.mark.asyncio
async def test_task_event_is_relayed_to_project_room(api_client, monkeypatch, hub):
	monkeypatch.setattr(settings, "service_signing_key", "svc-secret")

	response = await api_client.post(
		"/projects/p1/tasks/events",
		json={"event": "task-deleted", "taskId": "t1"},
		headers={"X-Internal-Secret": "svc-secret"},
	)

	assert response.status_code == 202
	hub.emit.assert_awaited_once_with("task-deleted", "t1", room=f"{settings.task_room_prefix}p1", skip_sid=None)


@pytest.mark.asyncio
async def test_task_event_validates_body(api_client, monkeypatch, hub):
	monkeypatch.setattr(settings, "service_signing_key", "svc-secret")
	headers = {"X-Internal-Secret": "svc-secret"}

	unknown = await api_client.post("/projects/p1/tasks/events", json={"event": "drawing"}, headers=headers)
	missing = await api_client.post("/projects/p1/tasks/events", json={"event": "task-updated"}, headers=headers)

	assert unknown.status_code == 422
	assert missing.status_code == 422
	hub.emit.assert_not_awaited()


@pytest.mark.asyncio
async def test_task_event_does_not_accept_ops_token(api_client, monkeypatch, hub):
	monkeypatch.setattr(settings, "obs_admin_token", "ops-token")
	monkeypatch.setattr(settings, "service_signing_key", "svc-secret")

	response = await api_client.post(
		"/projects/p1/tasks/events",
		json={"event": "task-deleted", "taskId": "t1"},
		headers={"X-Admin-Token": "ops-token", "X-Internal-Secret": "ops-token"},
	)

	assert response.status_code == 403
	hub.emit.assert_not_awaited()


@pytest.mark.asyncio
async def test_task_event_fails_closed_without_configured_secret(api_client, monkeypatch, hub):
	monkeypatch.setattr(settings, "service_signing_key", None)

	response = await api_client.post(
		"/projects/p1/tasks/events",
		json={"event": "task-deleted", "taskId": "t1"},
		headers={"X-Internal-Secret": "anything"},
	)

	assert response.status_code == 403
	assert response.json()["detail"] == "internal_secret_not_configured"
