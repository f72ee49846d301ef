"""In-process presence registry: which connections occupy which rooms.

The registry is owned by one namespace instance and only ever touched from
its event loop. Every operation completes without awaiting, so other tasks
never observe a half-applied mutation.
"""

from __future__ import annotations

from typing import Dict, List, Set, Tuple

from collabhub.domain.collab.models import PresenceEntry
from collabhub.domain.identity.models import Identity

MemberList = List[PresenceEntry]


class PresenceRegistry:
	def __init__(self) -> None:
		# room -> {connection_id: entry}; dicts keep join order
		self._rooms: Dict[str, Dict[str, PresenceEntry]] = {}
		# connection_id -> rooms in join order, so leave_all touches only what it needs
		self._by_connection: Dict[str, Dict[str, None]] = {}
		self._entries = 0

	def join(self, room: str, connection_id: str, identity: Identity) -> Tuple[bool, MemberList]:
		"""Add the connection to ``room``.

		Returns ``(added, members)``; ``added`` is False when the connection was
		already present, in which case nothing changes.
		"""
		entries = self._rooms.setdefault(room, {})
		if connection_id in entries:
			return False, list(entries.values())
		entries[connection_id] = PresenceEntry.for_connection(identity, connection_id)
		self._entries += 1
		self._by_connection.setdefault(connection_id, {})[room] = None
		return True, list(entries.values())

	def leave(self, room: str, connection_id: str) -> Tuple[bool, MemberList]:
		entries = self._rooms.get(room)
		if not entries or connection_id not in entries:
			return False, list(entries.values()) if entries else []
		del entries[connection_id]
		self._entries -= 1
		members = list(entries.values())
		if not entries:
			del self._rooms[room]
		rooms = self._by_connection.get(connection_id)
		if rooms is not None:
			rooms.pop(room, None)
			if not rooms:
				del self._by_connection[connection_id]
		return True, members

	def leave_all(self, connection_id: str) -> List[Tuple[str, MemberList]]:
		"""Remove the connection from every room it occupies.

		Returns one ``(room, members)`` pair per affected room, in join order.
		Calling it again for the same connection returns [].
		"""
		rooms = self._by_connection.pop(connection_id, None)
		if not rooms:
			return []
		affected: List[Tuple[str, MemberList]] = []
		for room in rooms:
			entries = self._rooms.get(room)
			if entries is None or entries.pop(connection_id, None) is None:
				continue
			self._entries -= 1
			affected.append((room, list(entries.values())))
			if not entries:
				del self._rooms[room]
		return affected

	def members(self, room: str) -> MemberList:
		return list(self._rooms.get(room, {}).values())

	def is_member(self, room: str, connection_id: str) -> bool:
		return connection_id in self._rooms.get(room, {})

	def rooms_for(self, connection_id: str) -> Set[str]:
		return set(self._by_connection.get(connection_id, ()))

	def room_count(self) -> int:
		return len(self._rooms)

	def entry_count(self) -> int:
		return self._entries
