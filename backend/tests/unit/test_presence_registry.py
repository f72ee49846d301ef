from collabhub.domain.collab.presence import PresenceRegistry
from collabhub.domain.identity import Identity

ALICE = Identity(user_id="user-a", display_name="Alice")
BOB = Identity(user_id="user-b", display_name="Bob")


def _socket_ids(members):
    return [entry.socket_id for entry in members]


def test_join_adds_entry_in_join_order():
    registry = PresenceRegistry()
    added, members = registry.join("room-1", "sid-a", ALICE)
    assert added is True
    assert _socket_ids(members) == ["sid-a"]

    added, members = registry.join("room-1", "sid-b", BOB)
    assert added is True
    assert _socket_ids(members) == ["sid-a", "sid-b"]
    assert members[1].to_dict() == {"userId": "user-b", "userName": "Bob", "socketId": "sid-b"}


def test_repeated_join_is_a_no_op():
    registry = PresenceRegistry()
    registry.join("room-1", "sid-a", ALICE)
    added, members = registry.join("room-1", "sid-a", ALICE)
    assert added is False
    assert _socket_ids(members) == ["sid-a"]
    assert registry.entry_count() == 1


def test_same_user_on_two_connections_gets_two_entries():
    registry = PresenceRegistry()
    registry.join("room-1", "sid-a1", ALICE)
    registry.join("room-1", "sid-a2", ALICE)
    members = registry.members("room-1")
    assert [entry.user_id for entry in members] == ["user-a", "user-a"]
    assert _socket_ids(members) == ["sid-a1", "sid-a2"]


def test_leave_unknown_room_or_connection_changes_nothing():
    registry = PresenceRegistry()
    assert registry.leave("nowhere", "sid-a") == (False, [])

    registry.join("room-1", "sid-a", ALICE)
    removed, members = registry.leave("room-1", "sid-b")
    assert removed is False
    assert _socket_ids(members) == ["sid-a"]


def test_leave_prunes_empty_room():
    registry = PresenceRegistry()
    registry.join("room-1", "sid-a", ALICE)
    removed, members = registry.leave("room-1", "sid-a")
    assert removed is True
    assert members == []
    assert registry.room_count() == 0
    assert registry.rooms_for("sid-a") == set()


def test_leave_all_reports_each_room_once_in_join_order():
    registry = PresenceRegistry()
    registry.join("room-2", "sid-a", ALICE)
    registry.join("room-1", "sid-a", ALICE)
    registry.join("room-1", "sid-b", BOB)

    affected = registry.leave_all("sid-a")

    assert [room for room, _ in affected] == ["room-2", "room-1"]
    assert dict(affected)["room-2"] == []
    assert _socket_ids(dict(affected)["room-1"]) == ["sid-b"]
    assert registry.room_count() == 1
    assert registry.entry_count() == 1
    assert not registry.is_member("room-1", "sid-a")


def test_leave_all_twice_returns_nothing_the_second_time():
    registry = PresenceRegistry()
    registry.join("room-1", "sid-a", ALICE)
    assert len(registry.leave_all("sid-a")) == 1
    assert registry.leave_all("sid-a") == []
    assert registry.leave_all("never-connected") == []


def test_rejoin_after_leave_appends_at_end():
    registry = PresenceRegistry()
    registry.join("room-1", "sid-a", ALICE)
    registry.join("room-1", "sid-b", BOB)
    registry.leave("room-1", "sid-a")
    _, members = registry.join("room-1", "sid-a", ALICE)
    assert _socket_ids(members) == ["sid-b", "sid-a"]
    assert registry.rooms_for("sid-a") == {"room-1"}
