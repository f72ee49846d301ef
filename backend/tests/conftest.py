import asyncio
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Settings are read at import time; a signing key is required.
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-entropy-0123456789")

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from collabhub.domain.collab.models import ChatMessage
from collabhub.domain.collab.sockets import CollabNamespace
from collabhub.domain.identity import Identity, IdentityResolver
from collabhub.infra import jwt as jwt_helper
from collabhub.infra import postgres
from collabhub.main import app
from collabhub.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from collabhub.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	original_env = settings.environment
	original_enforce = settings.enforce_room_membership
	settings.environment = "dev"
	settings.enforce_room_membership = False
	try:
		yield
	finally:
		settings.environment = original_env
		settings.enforce_room_membership = original_enforce


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client


class RecordingTransport:
	"""Stands in for the Socket.IO server: tracks rooms and records what each sid receives."""

	namespace = "/"

	def __init__(self) -> None:
		self.rooms: dict[str, dict[str, None]] = {}
		self.deliveries: dict[str, list[tuple[str, object]]] = {}

	def install(self, namespace: CollabNamespace) -> None:
		namespace.emit = self.emit
		namespace.enter_room = self.enter_room
		namespace.leave_room = self.leave_room

	async def emit(self, event, data=None, to=None, room=None, skip_sid=None, **kwargs):
		if to is not None:
			targets = [to]
		else:
			targets = [sid for sid in self.rooms.get(room, {}) if sid != skip_sid]
		for sid in targets:
			self.deliveries.setdefault(sid, []).append((event, data))

	async def enter_room(self, sid, room, **kwargs):
		self.rooms.setdefault(room, {})[sid] = None

	async def leave_room(self, sid, room, **kwargs):
		members = self.rooms.get(room)
		if members is not None:
			members.pop(sid, None)
			if not members:
				del self.rooms[room]

	def received(self, sid: str) -> list[tuple[str, object]]:
		return list(self.deliveries.get(sid, []))

	def events(self, sid: str) -> list[str]:
		return [event for event, _ in self.deliveries.get(sid, [])]

	def clear(self) -> None:
		self.deliveries.clear()


@pytest.fixture
def transport() -> RecordingTransport:
	return RecordingTransport()


class FakeUsers:
	def __init__(self, *identities: Identity) -> None:
		self._by_id = {identity.user_id: identity for identity in identities}

	async def get_identity(self, user_id: str):
		return self._by_id.get(user_id)


class FakeMessageStore:
	"""In-memory message store; ``fail_writes``/``fail_reads`` simulate an unavailable database."""

	def __init__(self, users: FakeUsers) -> None:
		self._users = users
		self.rows: dict[str, dict] = {}
		self.fail_writes = False
		self.fail_reads = False
		self.write_gate: asyncio.Event | None = None
		self.write_started = asyncio.Event()
		self._seq = 0

	async def create_message(self, *, project_id, author_id, content, type, attachments=()):
		self.write_started.set()
		if self.write_gate is not None:
			await self.write_gate.wait()
		if self.fail_writes:
			raise ConnectionError("database unavailable")
		self._seq += 1
		message_id = f"msg-{self._seq}"
		self.rows[message_id] = {
			"project_id": project_id,
			"author_id": author_id,
			"content": content,
			"type": type,
			"attachments": tuple(attachments),
			"timestamp": datetime.now(timezone.utc),
		}
		return message_id

	async def get_message(self, message_id):
		if self.fail_reads:
			raise ConnectionError("database unavailable")
		row = self.rows.get(message_id)
		if row is None:
			return None
		author = await self._users.get_identity(row["author_id"])
		return ChatMessage(
			id=message_id,
			project_id=row["project_id"],
			content=row["content"],
			type=row["type"],
			author=author,
			attachments=row["attachments"],
			timestamp=row["timestamp"],
		)


ALICE = Identity(user_id="user-a", display_name="Alice", email="alice@example.com")
BOB = Identity(user_id="user-b", display_name="Bob", email="bob@example.com")
CAROL = Identity(user_id="user-c", display_name="Carol")


@pytest.fixture
def users() -> FakeUsers:
	return FakeUsers(ALICE, BOB, CAROL)


@pytest.fixture
def message_store(users) -> FakeMessageStore:
	return FakeMessageStore(users)


@pytest.fixture
def make_namespace(users, message_store, transport):
	def _factory(**kwargs) -> CollabNamespace:
		kwargs.setdefault("resolver", IdentityResolver(users=users))
		kwargs.setdefault("message_store", message_store)
		namespace = CollabNamespace("/", **kwargs)
		transport.install(namespace)
		return namespace

	return _factory


def _scope_with_token(token: str) -> dict:
	return {"asgi.scope": {"headers": [(b"authorization", f"Bearer {token}".encode())]}}


@pytest.fixture
def scope_with_token():
	return _scope_with_token


@pytest.fixture
def connect():
	async def _connect(namespace: CollabNamespace, sid: str, identity: Identity) -> None:
		await namespace.trigger_event("connect", sid, _scope_with_token(jwt_helper.encode_access(identity.user_id)))

	return _connect


@pytest.fixture
def alice() -> Identity:
	return ALICE


@pytest.fixture
def bob() -> Identity:
	return BOB


@pytest.fixture
def carol() -> Identity:
	return CAROL
