"""Error taxonomy, per-user budgets and room access checks for realtime events."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from redis.exceptions import RedisError

from collabhub.domain.identity.models import Identity
from collabhub.infra import rate_limit
from collabhub.obs import metrics as obs_metrics
from collabhub.settings import settings

logger = logging.getLogger(__name__)


class CollabError(RuntimeError):
	"""Failure scoped to one inbound event; reported to its sender only."""

	def __init__(self, code: str, *, message: str | None = None) -> None:
		super().__init__(message or code)
		self.code = code
		self.detail = message or code

	def to_payload(self) -> dict:
		return {"code": self.code, "message": self.detail}


class ProtocolMisuse(CollabError):
	pass


class RoomAccessDenied(CollabError):
	pass


class RateLimited(CollabError):
	pass


async def _enforce(kind: str, user_id: str, *, limit: int, window_seconds: int) -> None:
	try:
		allowed = await rate_limit.allow(kind, user_id, limit=limit, window_seconds=window_seconds)
	except RedisError:
		# Counters unavailable: let the event through rather than stall the room.
		logger.warning("rate limit check unavailable kind=%s", kind, exc_info=True)
		return
	if not allowed:
		obs_metrics.rate_limited(kind)
		raise RateLimited("rate_limited", message="Too many events, slow down")


async def enforce_send_limit(user_id: str) -> None:
	await _enforce("chat_send", user_id, limit=settings.chat_send_limit_per_minute, window_seconds=60)


async def enforce_typing_limit(user_id: str) -> None:
	await _enforce(
		"typing",
		user_id,
		limit=settings.typing_limit_per_window,
		window_seconds=settings.typing_window_seconds,
	)


def project_scope(room: str) -> str:
	"""Map a room id to the project it belongs to (task rooms carry a prefix)."""
	prefix = settings.task_room_prefix
	if prefix and room.startswith(prefix):
		return room[len(prefix):]
	return room


class RoomAccessPolicy(Protocol):
	async def check(self, identity: Identity, room: str) -> None:
		...


class MembershipLookup(Protocol):
	async def is_member(self, project_id: str, user_id: str) -> bool:
		...


class OpenRoomAccess:
	"""Any authenticated identity may join any room."""

	async def check(self, identity: Identity, room: str) -> None:
		return None


class ProjectMembershipAccess:
	"""Only members of the room's project may join it."""

	def __init__(self, lookup: Optional[MembershipLookup] = None) -> None:
		if lookup is None:
			from collabhub.domain.collab.repo import ProjectMembershipRepository

			lookup = ProjectMembershipRepository()
		self._lookup = lookup

	async def check(self, identity: Identity, room: str) -> None:
		if not await self._lookup.is_member(project_scope(room), identity.user_id):
			raise RoomAccessDenied("not_a_member", message="Not authorized for this room")


def default_access_policy() -> RoomAccessPolicy:
	if settings.enforce_room_membership:
		return ProjectMembershipAccess()
	return OpenRoomAccess()
