"""Realtime collaboration domain exports."""

from .chat import ChatPersistenceBridge
from .membership import RoomMembershipManager
from .presence import PresenceRegistry
from .relay import EventRelay

__all__ = ["ChatPersistenceBridge", "EventRelay", "PresenceRegistry", "RoomMembershipManager"]
