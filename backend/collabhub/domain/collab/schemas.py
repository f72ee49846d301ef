"""Inbound payload validation for socket events."""

from __future__ import annotations

from typing import Any, List, Literal, Optional, Type, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from collabhub.domain.collab.policy import ProtocolMisuse
from collabhub.settings import settings

ModelT = TypeVar("ModelT", bound=BaseModel)

MessageType = Literal["text", "file", "image", "system"]


class _Inbound(BaseModel):
	model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")


class RoomRef(_Inbound):
	room_id: str = Field(validation_alias=AliasChoices("roomId", "room_id"), min_length=1)


class AttachmentIn(_Inbound):
	filename: Optional[str] = None
	url: Optional[str] = None
	type: Optional[str] = None


class SendMessageRequest(_Inbound):
	room_id: str = Field(validation_alias=AliasChoices("roomId", "room_id"), min_length=1)
	project_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("projectId", "project_id"))
	content: str = Field(min_length=1)
	type: MessageType = "text"
	attachments: List[AttachmentIn] = Field(default_factory=list)

	@field_validator("type", mode="before")
	def _default_type(cls, value: Any) -> Any:
		# Clients send null or "" for plain text messages.
		return value or "text"

	@field_validator("attachments", mode="before")
	def _default_attachments(cls, value: Any) -> Any:
		return [] if value is None else value

	@field_validator("content")
	def _content_length(cls, value: str) -> str:
		if len(value) > settings.message_max_length:
			raise ValueError(f"Message cannot exceed {settings.message_max_length} characters")
		return value

	@property
	def scope(self) -> str:
		"""Project the message is stored under; defaults to the room itself."""
		return self.project_id or self.room_id


class TaskEventRequest(_Inbound):
	project_id: str = Field(validation_alias=AliasChoices("projectId", "project_id"), min_length=1)
	task: Optional[dict] = None
	task_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("taskId", "task_id"))


def parse(model: Type[ModelT], payload: Any) -> ModelT:
	if not isinstance(payload, dict):
		raise ProtocolMisuse("invalid_payload", message="Expected an object payload")
	try:
		return model.model_validate(payload)
	except ValidationError as exc:
		raise ProtocolMisuse("invalid_payload", message=exc.errors()[0].get("msg", "invalid_payload")) from None


def parse_room(payload: Any) -> str:
	"""Accept either a bare room id or an object carrying ``roomId``."""
	if isinstance(payload, str):
		room = payload.strip()
		if not room:
			raise ProtocolMisuse("invalid_payload", message="Room id is required")
		return room
	return parse(RoomRef, payload).room_id
