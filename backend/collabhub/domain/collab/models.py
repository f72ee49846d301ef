"""Domain models for realtime collaboration."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from collabhub.domain.identity.models import Identity


@dataclass(frozen=True, slots=True)
class PresenceEntry:
	"""One connection's presence in one room."""

	user_id: str
	user_name: str
	socket_id: str

	@classmethod
	def for_connection(cls, identity: Identity, connection_id: str) -> "PresenceEntry":
		return cls(user_id=identity.user_id, user_name=identity.display_name, socket_id=connection_id)

	def to_dict(self) -> dict:
		return {"userId": self.user_id, "userName": self.user_name, "socketId": self.socket_id}


@dataclass(slots=True)
class Connection:
	"""An authenticated transport session.

	Rooms joined by the session are tracked by the presence registry, keyed by sid.
	"""

	sid: str
	identity: Identity

	@property
	def user_id(self) -> str:
		return self.identity.user_id


@dataclass(frozen=True, slots=True)
class Attachment:
	filename: Optional[str] = None
	url: Optional[str] = None
	type: Optional[str] = None

	def to_dict(self) -> dict:
		return {"filename": self.filename, "url": self.url, "type": self.type}


@dataclass(frozen=True, slots=True)
class ChatMessage:
	"""A chat message as stored by the message store."""

	id: str
	project_id: str
	content: str
	type: str
	author: Identity
	attachments: Tuple[Attachment, ...]
	timestamp: datetime

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"projectId": self.project_id,
			"content": self.content,
			"type": self.type,
			"user": self.author.to_author(),
			"attachments": [attachment.to_dict() for attachment in self.attachments],
			"timestamp": self.timestamp.isoformat(),
		}
