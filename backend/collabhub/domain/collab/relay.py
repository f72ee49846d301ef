"""Fan-out of events to their audience according to RELAY_POLICY."""

from __future__ import annotations

import asyncio
from typing import Any, Optional, Protocol

from collabhub.domain.collab.events import Audience, EventKind, policy_for
from collabhub.obs import metrics as obs_metrics


class Transport(Protocol):
	"""The room-addressable broadcast primitives of the socket server."""

	namespace: str

	async def emit(self, event: str, data: Any = None, to: Optional[str] = None, room: Optional[str] = None, skip_sid: Optional[str] = None, **kwargs: Any) -> None:
		...

	async def enter_room(self, sid: str, room: str, **kwargs: Any) -> None:
		...

	async def leave_room(self, sid: str, room: str, **kwargs: Any) -> None:
		...


class EventRelay:
	"""Stateless dispatcher from an event kind to its audience.

	Every emit goes through one lock, so members of a room receive events in
	the order the hub processed them.
	"""

	def __init__(self, transport: Transport, *, task_room_prefix: str = "project-") -> None:
		self._transport = transport
		self._task_room_prefix = task_room_prefix
		self._lock = asyncio.Lock()

	def task_room(self, project_id: str) -> str:
		return f"{self._task_room_prefix}{project_id}"

	def audience_room(self, kind: EventKind, scope: str) -> str:
		if policy_for(kind).audience is Audience.PROJECT_TASKS:
			return self.task_room(scope)
		return scope

	async def publish(self, kind: EventKind, scope: str, payload: Any, *, sender_sid: Optional[str] = None) -> str:
		"""Deliver ``payload`` as ``kind`` to the audience of ``scope``; returns the room used."""
		policy = policy_for(kind)
		room = self.audience_room(kind, scope)
		skip_sid = None if policy.include_sender else sender_sid
		async with self._lock:
			await self._transport.emit(kind.value, payload, room=room, skip_sid=skip_sid)
		obs_metrics.socket_event(self._transport.namespace, kind.value, "out")
		return room

	async def send_to(self, sid: str, event: str, payload: Any) -> None:
		"""Point-to-point delivery to one connection (acks, snapshots, errors)."""
		async with self._lock:
			await self._transport.emit(event, payload, to=sid)
		obs_metrics.socket_event(self._transport.namespace, event, "out")
