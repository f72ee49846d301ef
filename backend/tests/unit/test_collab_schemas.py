import pytest

from collabhub.domain.collab import schemas
from collabhub.domain.collab.policy import ProtocolMisuse
from collabhub.settings import settings


def test_parse_room_accepts_string_or_object():
    assert schemas.parse_room("room-1") == "room-1"
    assert schemas.parse_room({"roomId": " room-1 "}) == "room-1"
    assert schemas.parse_room({"room_id": "room-2", "extra": True}) == "room-2"


@pytest.mark.parametrize("payload", [None, "", "   ", {}, {"roomId": ""}, 42, ["room-1"]])
def test_parse_room_rejects_missing_room(payload):
    with pytest.raises(ProtocolMisuse) as excinfo:
        schemas.parse_room(payload)
    assert excinfo.value.code == "invalid_payload"


def test_send_message_defaults_and_scope():
    request = schemas.parse(schemas.SendMessageRequest, {"roomId": "room-1", "content": "hello"})
    assert request.type == "text"
    assert request.attachments == []
    assert request.scope == "room-1"

    scoped = schemas.parse(schemas.SendMessageRequest, {"roomId": "room-1", "projectId": "p1", "content": "x"})
    assert scoped.scope == "p1"


@pytest.mark.parametrize(
    "payload",
    [
        {"roomId": "room-1", "content": "   "},
        {"roomId": "room-1"},
        {"content": "hello"},
        {"roomId": "room-1", "content": "hello", "type": "video"},
    ],
)
def test_send_message_rejects_bad_payloads(payload):
    with pytest.raises(ProtocolMisuse):
        schemas.parse(schemas.SendMessageRequest, payload)


def test_send_message_enforces_length_limit(monkeypatch):
    monkeypatch.setattr(settings, "message_max_length", 5)
    assert schemas.parse(schemas.SendMessageRequest, {"roomId": "r", "content": "12345"}).content == "12345"
    with pytest.raises(ProtocolMisuse) as excinfo:
        schemas.parse(schemas.SendMessageRequest, {"roomId": "r", "content": "123456"})
    assert "5 characters" in excinfo.value.detail


def test_task_event_request_aliases():
    request = schemas.parse(schemas.TaskEventRequest, {"projectId": "p1", "taskId": "t1"})
    assert request.project_id == "p1"
    assert request.task_id == "t1"
    assert request.task is None


@pytest.mark.parametrize("message_type", [None, ""])
def test_send_message_blank_type_means_text(message_type):
    request = schemas.parse(schemas.SendMessageRequest, {"roomId": "r", "content": "hi", "type": message_type})
    assert request.type == "text"


def test_send_message_null_attachments_means_none():
    request = schemas.parse(schemas.SendMessageRequest, {"roomId": "r", "content": "hi", "attachments": None})
    assert request.attachments == []
