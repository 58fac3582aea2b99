"""Tests for the Event system."""

from sack.core.events import Event, EventType


def test_event_creation():
    event = Event(type=EventType.UPDATE, data={"entry": {"id": "a"}, "id": "a"})

    assert event.type == "entry:update"
    assert event.entry == {"id": "a"}
    assert event.entry_id == "a"
    assert event.id  # auto-generated
    assert event.timestamp > 0
    assert event.parent_id is None
    assert event.origin is None
    assert event.metadata == {}


def test_update_and_delete_helpers():
    update = Event.update({"id": "a", "name": "x"}, "a", source="MemoryDriver")
    delete = Event.delete(None, "b")

    assert update.type == EventType.UPDATE
    assert update.data == {"entry": {"id": "a", "name": "x"}, "id": "a"}
    assert update.source == "MemoryDriver"

    assert delete.type == EventType.DELETE
    assert delete.entry is None
    assert delete.entry_id == "b"


def test_event_child():
    parent = Event(type=EventType.UPDATE, source="MemoryDriver", origin="writer-1")
    child = parent.child(EventType.UPDATE, {"entry": "converted", "id": "a"})

    assert child.parent_id == parent.id
    assert child.source == "MemoryDriver"
    assert child.origin == "writer-1"
    assert child.entry == "converted"
    assert child.id != parent.id


def test_event_type_constants():
    assert EventType.UPDATE == "entry:update"
    assert EventType.DELETE == "entry:delete"
    assert EventType.CHANGES == "entry:*"
    assert EventType.ALL == "*"
