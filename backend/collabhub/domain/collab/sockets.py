"""Socket.IO namespace for whiteboard, presence, chat and task fanout."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import socketio
from socketio.exceptions import ConnectionRefusedError

from collabhub.domain.collab import schemas
from collabhub.domain.collab.chat import ChatPersistenceBridge, MessageStore
from collabhub.domain.collab.events import ERROR, INBOUND_ALIASES, JOIN_ERROR, MESSAGE_ERROR, EventKind
from collabhub.domain.collab.membership import RoomMembershipManager
from collabhub.domain.collab.models import Connection
from collabhub.domain.collab.policy import (
	CollabError,
	ProtocolMisuse,
	RoomAccessPolicy,
	default_access_policy,
	enforce_typing_limit,
)
from collabhub.domain.collab.presence import PresenceRegistry
from collabhub.domain.collab.relay import EventRelay
from collabhub.domain.identity import IdentityResolver, Unauthenticated
from collabhub.domain.identity.resolver import extract_bearer
from collabhub.obs import logging as obs_logging
from collabhub.obs import metrics as obs_metrics
from collabhub.settings import settings

logger = logging.getLogger(__name__)

_namespace: "CollabNamespace" | None = None

Handler = Callable[[Connection, Any], Awaitable[Any]]

# Where a failed event is reported; anything else gets the generic error event.
_ERROR_EVENTS: Dict[str, str] = {
	"send-message": MESSAGE_ERROR,
	"join-room": JOIN_ERROR,
}


class CollabNamespace(socketio.AsyncNamespace):
	"""Namespace that owns presence for the process and relays room events.

	Events of one connection run one at a time, in arrival order, under that
	connection's lock; disconnect cleanup queues behind them the same way.
	"""

	def __init__(
		self,
		namespace: Optional[str] = None,
		*,
		resolver: Optional[IdentityResolver] = None,
		message_store: Optional[MessageStore] = None,
		access_policy: Optional[RoomAccessPolicy] = None,
	) -> None:
		super().__init__(namespace or settings.socketio_namespace)
		self._resolver = resolver or IdentityResolver()
		self._sessions: Dict[str, Connection] = {}
		self._locks: Dict[str, asyncio.Lock] = {}
		self.presence = PresenceRegistry()
		self.relay = EventRelay(self, task_room_prefix=settings.task_room_prefix)
		self.membership = RoomMembershipManager(
			self.presence,
			self.relay,
			self,
			access=access_policy or default_access_policy(),
		)
		self.chat = ChatPersistenceBridge(self.presence, self.relay, store=message_store)

	async def trigger_event(self, event: str, *args):
		event = INBOUND_ALIASES.get(event, event)
		return await super().trigger_event(event.replace("-", "_"), *args)

	def get_connection(self, sid: str) -> Optional[Connection]:
		return self._sessions.get(sid)

	# -- lifecycle ---------------------------------------------------------

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		token = extract_bearer(environ, auth)
		try:
			identity = await self._resolver.resolve(token)
		except Unauthenticated as exc:
			obs_metrics.socket_refused(exc.code)
			logger.info("collab connect refused sid=%s reason=%s", sid, exc.code)
			raise ConnectionRefusedError("unauthenticated") from None
		except Exception:
			obs_metrics.socket_refused("lookup_failed")
			logger.warning("collab connect identity lookup failed sid=%s", sid, exc_info=True)
			raise ConnectionRefusedError("unauthenticated") from None
		self._sessions[sid] = Connection(sid=sid, identity=identity)
		self._locks[sid] = asyncio.Lock()
		obs_metrics.socket_connected(self.namespace)
		logger.info("collab connect sid=%s user=%s", sid, identity.user_id)

	async def on_disconnect(self, sid: str, reason: Optional[str] = None) -> None:
		lock = self._locks.get(sid)
		if lock is None or sid not in self._sessions:
			return
		# Cleanup only touches in-process state; it must finish even if this task is cancelled.
		await asyncio.shield(self._cleanup(sid, lock, reason))

	async def _cleanup(self, sid: str, lock: asyncio.Lock, reason: Optional[str]) -> None:
		async with lock:
			connection = self._sessions.pop(sid, None)
			if connection is None:
				return
			tokens = obs_logging.bind_context(sid=sid, user_id=connection.user_id, event="disconnect")
			try:
				rooms = await self.membership.handle_disconnect(connection)
				logger.info("collab disconnect sid=%s user=%s rooms=%d reason=%s", sid, connection.user_id, len(rooms), reason)
			finally:
				self._locks.pop(sid, None)
				obs_metrics.socket_disconnected(self.namespace)
				self._record_presence()
				obs_logging.reset_context(tokens)

	# -- presence ----------------------------------------------------------

	async def on_join_room(self, sid: str, payload: Any = None) -> Any:
		return await self._dispatch(sid, "join-room", self._join, payload)

	async def on_leave_room(self, sid: str, payload: Any = None) -> Any:
		return await self._dispatch(sid, "leave-room", self._leave, payload)

	async def _join(self, connection: Connection, payload: Any) -> dict:
		ack = await self.membership.handle_join(connection, schemas.parse_room(payload))
		self._record_presence()
		return ack

	async def _leave(self, connection: Connection, payload: Any) -> dict:
		room = schemas.parse_room(payload)
		await self.membership.handle_leave(connection, room)
		self._record_presence()
		return {"status": "left", "roomId": room}

	# -- whiteboard --------------------------------------------------------

	async def on_drawing(self, sid: str, payload: Any = None) -> Any:
		return await self._dispatch(sid, "drawing", self._whiteboard(EventKind.DRAWING), payload)

	async def on_add_shape(self, sid: str, payload: Any = None) -> Any:
		return await self._dispatch(sid, "add-shape", self._whiteboard(EventKind.ADD_SHAPE), payload)

	async def on_add_text(self, sid: str, payload: Any = None) -> Any:
		return await self._dispatch(sid, "add-text", self._whiteboard(EventKind.ADD_TEXT), payload)

	async def on_add_sticky_note(self, sid: str, payload: Any = None) -> Any:
		return await self._dispatch(sid, "add-sticky-note", self._whiteboard(EventKind.ADD_STICKY_NOTE), payload)

	async def on_update_object(self, sid: str, payload: Any = None) -> Any:
		return await self._dispatch(sid, "update-object", self._whiteboard(EventKind.UPDATE_OBJECT), payload)

	async def on_delete_object(self, sid: str, payload: Any = None) -> Any:
		return await self._dispatch(sid, "delete-object", self._whiteboard(EventKind.DELETE_OBJECT), payload)

	async def on_clear_canvas(self, sid: str, payload: Any = None) -> Any:
		return await self._dispatch(sid, "clear-canvas", self._whiteboard(EventKind.CLEAR_CANVAS), payload)

	def _whiteboard(self, kind: EventKind) -> Handler:
		async def relay(connection: Connection, payload: Any) -> None:
			room = schemas.parse_room(payload)
			# A bare room id carries nothing beyond the event itself.
			data = payload if isinstance(payload, dict) else None
			await self.relay.publish(kind, room, data, sender_sid=connection.sid)

		return relay

	# -- chat --------------------------------------------------------------

	async def on_send_message(self, sid: str, payload: Any = None) -> Any:
		return await self._dispatch(sid, "send-message", self._send_message, payload)

	async def on_typing(self, sid: str, payload: Any = None) -> Any:
		return await self._dispatch(sid, "typing", self._typing(EventKind.TYPING), payload)

	async def on_stop_typing(self, sid: str, payload: Any = None) -> Any:
		return await self._dispatch(sid, "stop-typing", self._typing(EventKind.STOP_TYPING), payload)

	async def _send_message(self, connection: Connection, payload: Any) -> dict:
		request = schemas.parse(schemas.SendMessageRequest, payload)
		message = await self.chat.send_message(connection, request)
		return {"status": "sent", "id": message.id}

	def _typing(self, kind: EventKind) -> Handler:
		async def relay(connection: Connection, payload: Any) -> None:
			room = schemas.parse_room(payload)
			if kind is EventKind.TYPING:
				await enforce_typing_limit(connection.user_id)
			data = {**connection.identity.to_public(), "roomId": room}
			await self.relay.publish(kind, room, data, sender_sid=connection.sid)

		return relay

	# -- tasks -------------------------------------------------------------

	async def on_task_created(self, sid: str, payload: Any = None) -> Any:
		return await self._dispatch(sid, "task-created", self._task(EventKind.TASK_CREATED), payload)

	async def on_task_updated(self, sid: str, payload: Any = None) -> Any:
		return await self._dispatch(sid, "task-updated", self._task(EventKind.TASK_UPDATED), payload)

	async def on_task_deleted(self, sid: str, payload: Any = None) -> Any:
		return await self._dispatch(sid, "task-deleted", self._task(EventKind.TASK_DELETED), payload)

	def _task(self, kind: EventKind) -> Handler:
		async def relay(connection: Connection, payload: Any) -> None:
			request = schemas.parse(schemas.TaskEventRequest, payload)
			await self.relay.publish(kind, request.project_id, task_payload(kind, request.task, request.task_id), sender_sid=connection.sid)

		return relay

	# -- plumbing ----------------------------------------------------------

	async def _dispatch(self, sid: str, event: str, handler: Handler, payload: Any) -> Any:
		obs_metrics.socket_event(self.namespace, event)
		lock = self._locks.get(sid)
		if lock is None:
			return None
		async with lock:
			connection = self._sessions.get(sid)
			if connection is None:
				# Disconnected while this event was queued.
				return None
			tokens = obs_logging.bind_context(sid=sid, user_id=connection.user_id, event=event)
			try:
				return await handler(connection, payload)
			except CollabError as exc:
				return await self._report(sid, event, exc)
			except Exception:
				logger.exception("collab event failed sid=%s event=%s", sid, event)
				return await self._report(sid, event, CollabError("internal_error", message="Something went wrong"))
			finally:
				obs_logging.reset_context(tokens)

	async def _report(self, sid: str, event: str, exc: CollabError) -> dict:
		obs_metrics.socket_event_error(event, exc.code)
		if isinstance(exc, ProtocolMisuse):
			logger.info("collab payload rejected sid=%s event=%s detail=%s", sid, event, exc.detail)
		payload = {"event": event, **exc.to_payload()}
		try:
			await self.relay.send_to(sid, _ERROR_EVENTS.get(event, ERROR), payload)
		except Exception:
			logger.warning("collab error report failed sid=%s event=%s", sid, event, exc_info=True)
		return {"status": "error", "code": exc.code}

	def _record_presence(self) -> None:
		obs_metrics.presence_snapshot(self.presence.room_count(), self.presence.entry_count())


def task_payload(kind: EventKind, task: Optional[dict], task_id: Optional[str]) -> Any:
	"""Deletions carry the task id; creations and updates carry the task object."""
	if kind is EventKind.TASK_DELETED:
		resolved = task_id or (task or {}).get("id") or (task or {}).get("_id")
		if not resolved:
			raise ProtocolMisuse("invalid_payload", message="taskId is required")
		return str(resolved)
	if not task:
		raise ProtocolMisuse("invalid_payload", message="task is required")
	return task


def set_namespace(namespace: Optional[CollabNamespace]) -> None:
	global _namespace
	_namespace = namespace


def get_namespace() -> Optional[CollabNamespace]:
	return _namespace


async def notify_task_event(kind: EventKind, project_id: str, payload: Any) -> bool:
	"""Relay a task notice originated server side (REST controllers)."""
	if _namespace is None:
		return False
	await _namespace.relay.publish(kind, project_id, payload)
	return True
