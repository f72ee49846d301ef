"""Event kinds and the fixed audience/inclusion policy for each of them."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict


class EventKind(str, enum.Enum):
	"""Outbound event kinds; the value is the wire name."""

	DRAWING = "drawing"
	ADD_SHAPE = "add-shape"
	ADD_TEXT = "add-text"
	ADD_STICKY_NOTE = "add-sticky-note"
	UPDATE_OBJECT = "update-object"
	DELETE_OBJECT = "delete-object"
	CLEAR_CANVAS = "clear-canvas"
	TYPING = "typing"
	STOP_TYPING = "stop-typing"
	ACTIVE_USERS = "active-users"
	USER_JOINED = "user-joined"
	USER_LEFT = "user-left"
	TASK_CREATED = "task-created"
	TASK_UPDATED = "task-updated"
	TASK_DELETED = "task-deleted"
	RECEIVE_MESSAGE = "receive-message"


class Audience(enum.Enum):
	ROOM = "room"
	# Room derived from the project scope (see task_room)
	PROJECT_TASKS = "project_tasks"


@dataclass(frozen=True, slots=True)
class RelayPolicy:
	audience: Audience
	include_sender: bool


_LOCAL_ECHO = RelayPolicy(Audience.ROOM, include_sender=False)
_AUTHORITATIVE = RelayPolicy(Audience.ROOM, include_sender=True)
_TASK_NOTICE = RelayPolicy(Audience.PROJECT_TASKS, include_sender=True)

# Events the originator already rendered locally skip the originator;
# server-authoritative state goes to everyone in the room.
RELAY_POLICY: Dict[EventKind, RelayPolicy] = {
	EventKind.DRAWING: _LOCAL_ECHO,
	EventKind.ADD_SHAPE: _LOCAL_ECHO,
	EventKind.ADD_TEXT: _LOCAL_ECHO,
	EventKind.ADD_STICKY_NOTE: _LOCAL_ECHO,
	EventKind.UPDATE_OBJECT: _LOCAL_ECHO,
	EventKind.DELETE_OBJECT: _LOCAL_ECHO,
	EventKind.CLEAR_CANVAS: _LOCAL_ECHO,
	EventKind.TYPING: _LOCAL_ECHO,
	EventKind.STOP_TYPING: _LOCAL_ECHO,
	EventKind.ACTIVE_USERS: _AUTHORITATIVE,
	EventKind.USER_JOINED: _LOCAL_ECHO,
	EventKind.USER_LEFT: _LOCAL_ECHO,
	EventKind.TASK_CREATED: _TASK_NOTICE,
	EventKind.TASK_UPDATED: _TASK_NOTICE,
	EventKind.TASK_DELETED: _TASK_NOTICE,
	EventKind.RECEIVE_MESSAGE: _AUTHORITATIVE,
}

WHITEBOARD_EVENTS = frozenset(
	{
		EventKind.DRAWING,
		EventKind.ADD_SHAPE,
		EventKind.ADD_TEXT,
		EventKind.ADD_STICKY_NOTE,
		EventKind.UPDATE_OBJECT,
		EventKind.DELETE_OBJECT,
		EventKind.CLEAR_CANVAS,
	}
)

TASK_EVENTS = frozenset({EventKind.TASK_CREATED, EventKind.TASK_UPDATED, EventKind.TASK_DELETED})

# Sender-only events; never broadcast.
MESSAGE_ERROR = "message-error"
JOIN_ERROR = "join-error"
ERROR = "error"

# camelCase names used by existing web clients
INBOUND_ALIASES: Dict[str, str] = {
	"joinRoom": "join-room",
	"leaveRoom": "leave-room",
	"addShape": "add-shape",
	"addText": "add-text",
	"addStickyNote": "add-sticky-note",
	"updateObject": "update-object",
	"deleteObject": "delete-object",
	"clearCanvas": "clear-canvas",
	"sendMessage": "send-message",
	"stopTyping": "stop-typing",
	"taskCreated": "task-created",
	"taskUpdated": "task-updated",
	"taskDeleted": "task-deleted",
}


def policy_for(kind: EventKind) -> RelayPolicy:
	return RELAY_POLICY[kind]
