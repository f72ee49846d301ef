"""HTTP views onto the realtime hub: presence snapshots and server-side task notices."""

from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from collabhub.domain.collab import sockets
from collabhub.domain.collab.events import EventKind
from collabhub.domain.collab.policy import ProtocolMisuse
from collabhub.domain.identity import Identity
from collabhub.infra.auth import get_current_identity
from collabhub.settings import settings

router = APIRouter(tags=["presence"])


class PresenceMember(BaseModel):
	userId: str
	userName: str
	socketId: str


class RoomPresenceResponse(BaseModel):
	roomId: str
	count: int
	members: list[PresenceMember]


class TaskNotice(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	event: Literal["task-created", "task-updated", "task-deleted"]
	task: Optional[dict] = None
	task_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("taskId", "task_id"))


def verify_internal_secret(x_internal_secret: Optional[str] = Header(default=None, alias="X-Internal-Secret")) -> None:
	secret = settings.service_signing_key
	if not secret:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="internal_secret_not_configured")
	if x_internal_secret != secret:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Invalid internal secret")


def _require_namespace() -> sockets.CollabNamespace:
	namespace = sockets.get_namespace()
	if namespace is None:
		raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="realtime_unavailable")
	return namespace


@router.get("/rooms/{room_id}/presence", response_model=RoomPresenceResponse)
async def room_presence(room_id: str, _: Identity = Depends(get_current_identity)) -> RoomPresenceResponse:
	members = [entry.to_dict() for entry in _require_namespace().presence.members(room_id)]
	return RoomPresenceResponse(roomId=room_id, count=len(members), members=members)


@router.post(
	"/projects/{project_id}/tasks/events",
	status_code=status.HTTP_202_ACCEPTED,
	dependencies=[Depends(verify_internal_secret)],
)
async def publish_task_event(project_id: str, notice: TaskNotice) -> dict[str, str]:
	_require_namespace()
	kind = EventKind(notice.event)
	try:
		payload = sockets.task_payload(kind, notice.task, notice.task_id)
	except ProtocolMisuse as exc:
		raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.detail) from None
	await sockets.notify_task_event(kind, project_id, payload)
	return {"status": "queued", "event": kind.value}
