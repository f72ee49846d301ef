"""Join/leave/disconnect handling on top of the presence registry."""

from __future__ import annotations

import logging
from typing import List, Optional

from collabhub.domain.collab.events import EventKind
from collabhub.domain.collab.models import Connection
from collabhub.domain.collab.policy import OpenRoomAccess, RoomAccessPolicy
from collabhub.domain.collab.presence import MemberList, PresenceRegistry
from collabhub.domain.collab.relay import EventRelay, Transport

logger = logging.getLogger(__name__)


def _snapshot(members: MemberList) -> List[dict]:
	return [entry.to_dict() for entry in members]


class RoomMembershipManager:
	def __init__(
		self,
		registry: PresenceRegistry,
		relay: EventRelay,
		transport: Transport,
		*,
		access: Optional[RoomAccessPolicy] = None,
	) -> None:
		self._registry = registry
		self._relay = relay
		self._transport = transport
		self._access = access or OpenRoomAccess()

	async def handle_join(self, connection: Connection, room: str) -> dict:
		"""Join ``room`` and return the acknowledgement for the caller.

		A repeated join changes nothing; the caller still gets the current
		member list so a client that lost track of it can resync.
		"""
		await self._access.check(connection.identity, room)
		added, members = self._registry.join(room, connection.sid, connection.identity)
		await self._transport.enter_room(connection.sid, room)
		if added:
			logger.info("room join sid=%s user=%s room=%s members=%d", connection.sid, connection.user_id, room, len(members))
			await self._relay.publish(EventKind.ACTIVE_USERS, room, _snapshot(members), sender_sid=connection.sid)
			await self._relay.publish(EventKind.USER_JOINED, room, connection.identity.to_public(), sender_sid=connection.sid)
		else:
			await self._relay.send_to(connection.sid, EventKind.ACTIVE_USERS.value, _snapshot(members))
		return {"status": "joined", "roomId": room}

	async def handle_leave(self, connection: Connection, room: str) -> bool:
		removed, members = self._registry.leave(room, connection.sid)
		await self._transport.leave_room(connection.sid, room)
		if not removed:
			return False
		logger.info("room leave sid=%s user=%s room=%s members=%d", connection.sid, connection.user_id, room, len(members))
		await self._announce_departure(connection, room, members)
		return True

	async def handle_disconnect(self, connection: Connection) -> List[str]:
		"""Drop the connection from every room and notify the remaining members.

		Presence is already consistent once ``leave_all`` returns; a failed
		notification for one room does not stop the others.
		"""
		affected = self._registry.leave_all(connection.sid)
		rooms: List[str] = []
		for room, members in affected:
			rooms.append(room)
			try:
				await self._transport.leave_room(connection.sid, room)
				await self._announce_departure(connection, room, members)
			except Exception:
				logger.exception("disconnect notify failed sid=%s room=%s", connection.sid, room)
		return rooms

	async def _announce_departure(self, connection: Connection, room: str, members: MemberList) -> None:
		await self._relay.publish(EventKind.ACTIVE_USERS, room, _snapshot(members), sender_sid=connection.sid)
		await self._relay.publish(EventKind.USER_LEFT, room, connection.identity.to_public(), sender_sid=connection.sid)
