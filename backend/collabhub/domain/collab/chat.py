"""Chat persistence bridge: write durably, read back, then relay."""

from __future__ import annotations

import logging
from time import perf_counter
from typing import Optional, Protocol, Sequence

from collabhub.domain.collab.events import EventKind
from collabhub.domain.collab.models import Attachment, ChatMessage, Connection
from collabhub.domain.collab.policy import CollabError, enforce_send_limit
from collabhub.domain.collab.presence import PresenceRegistry
from collabhub.domain.collab.relay import EventRelay
from collabhub.domain.collab.schemas import SendMessageRequest
from collabhub.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class PersistenceFailure(CollabError):
	"""The message store did not accept or return the message."""


class MessageStore(Protocol):
	async def create_message(
		self,
		*,
		project_id: str,
		author_id: str,
		content: str,
		type: str,
		attachments: Sequence[Attachment] = (),
	) -> str:
		...

	async def get_message(self, message_id: str) -> Optional[ChatMessage]:
		...


class ChatPersistenceBridge:
	def __init__(self, registry: PresenceRegistry, relay: EventRelay, store: Optional[MessageStore] = None) -> None:
		if store is None:
			from collabhub.domain.collab.repo import PostgresMessageStore

			store = PostgresMessageStore()
		self._registry = registry
		self._relay = relay
		self._store = store

	async def send_message(self, connection: Connection, request: SendMessageRequest) -> ChatMessage:
		"""Persist the message, then deliver the stored copy to the whole room.

		Nothing reaches the room unless both the write and the read-back
		succeed; errors are raised for the caller to report to the sender.
		"""
		if not self._registry.is_member(request.room_id, connection.sid):
			raise CollabError("not_in_room", message="Join the room before sending messages")
		await enforce_send_limit(connection.user_id)
		attachments = tuple(
			Attachment(filename=item.filename, url=item.url, type=item.type) for item in request.attachments
		)
		start = perf_counter()
		try:
			message_id = await self._store.create_message(
				project_id=request.scope,
				author_id=connection.user_id,
				content=request.content,
				type=request.type,
				attachments=attachments,
			)
			message = await self._store.get_message(message_id)
		except Exception as exc:
			obs_metrics.chat_message("failed")
			logger.warning("chat write failed sid=%s room=%s", connection.sid, request.room_id, exc_info=True)
			raise PersistenceFailure("persistence_failed", message="Failed to send message") from exc
		if message is None:
			obs_metrics.chat_message("failed")
			logger.warning("chat read-back missing id=%s room=%s", message_id, request.room_id)
			raise PersistenceFailure("persistence_failed", message="Failed to send message")
		obs_metrics.CHAT_WRITE_LATENCY.observe(perf_counter() - start)
		obs_metrics.chat_message("persisted")
		await self._relay.publish(EventKind.RECEIVE_MESSAGE, request.room_id, message.to_dict(), sender_sid=connection.sid)
		return message
