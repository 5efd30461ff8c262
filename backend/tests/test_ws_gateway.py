"""Tests for the realtime room gateway."""

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from starlette.testclient import WebSocketTestSession

from warbler.api import ws as ws_module
from warbler.models import Message, Room, User


def send(connection: WebSocketTestSession, event: str, **data) -> None:
    connection.send_json({"event": event, "data": data})


def make_room(session_factory, *, subscribers, creator_id=None) -> int:
    with session_factory() as session:
        room = Room(name="Chat", creator_id=creator_id)
        room.subscribers = [session.get(User, user_id) for user_id in subscribers]
        session.add(room)
        session.commit()
        return room.id


def online_ids(session_factory, room_id: int) -> list[int]:
    with session_factory() as session:
        return session.get(Room, room_id).users_online


def test_enter_without_subscription_reports_error(client, session_factory, create_user):
    alice = create_user("alice")
    bob = create_user("bob")
    room_id = make_room(session_factory, subscribers=[alice])

    with client.websocket_connect("/ws") as connection:
        send(connection, "ROOM:ENTER", roomId=room_id, userId=bob)
        frame = connection.receive_json()

    assert frame["event"] == "connect_error"
    assert frame["data"]["message"] == "You do not have permission to enter this room"
    assert online_ids(session_factory, room_id) == []


def test_enter_broadcasts_online_users(client, session_factory, create_user):
    alice = create_user("alice")
    room_id = make_room(session_factory, subscribers=[alice])

    with client.websocket_connect("/ws") as connection:
        send(connection, "ROOM:ENTER", roomId=room_id, userId=alice)
        frame = connection.receive_json()
        assert frame == {"event": "ROOM:SET_USERS", "data": {"roomId": room_id, "usersOnline": [alice]}}

        send(connection, "ROOM:LEAVE", roomId=room_id, userId=alice)
        left = connection.receive_json()
        assert left["data"]["usersOnline"] == []


def test_new_message_reaches_room_members(client, session_factory, create_user):
    alice = create_user("alice")
    bob = create_user("bob")
    room_id = make_room(session_factory, subscribers=[alice, bob])

    with client.websocket_connect("/ws") as first, client.websocket_connect("/ws") as second:
        send(first, "ROOM:ENTER", roomId=room_id, userId=alice)
        assert first.receive_json()["event"] == "ROOM:SET_USERS"

        send(second, "ROOM:ENTER", roomId=room_id, userId=bob)
        assert second.receive_json()["data"]["usersOnline"] == [alice, bob]
        assert first.receive_json()["data"]["usersOnline"] == [alice, bob]

        send(first, "MESSAGE:NEW", roomId=room_id, userId=alice, body="hi bob")
        for connection in (first, second):
            frame = connection.receive_json()
            assert frame["event"] == "ROOM:NEW_MESSAGE"
            assert frame["data"]["body"] == "hi bob"
            assert frame["data"]["authorId"] == alice

    with session_factory() as session:
        assert [message.body for message in session.query(Message).all()] == ["hi bob"]


def test_edit_requires_authorship_and_delete_requires_membership(client, session_factory, create_user):
    alice = create_user("alice")
    bob = create_user("bob")
    carol = create_user("carol")
    room_id = make_room(session_factory, subscribers=[alice, bob])
    with session_factory() as session:
        message = Message(room_id=room_id, author_id=alice, body="original")
        session.add(message)
        session.commit()
        message_id = message.id

    with client.websocket_connect("/ws") as connection:
        send(connection, "ROOM:ENTER", roomId=room_id, userId=alice)
        connection.receive_json()

        send(connection, "MESSAGE:EDIT", roomId=room_id, userId=bob, messageId=message_id, body="changed")
        error = connection.receive_json()
        assert error["event"] == "connect_error"
        assert error["data"]["message"] == "You do not have permission to edit this message"

        send(connection, "MESSAGE:EDIT", roomId=room_id, userId=alice, messageId=message_id, body="changed")
        edited = connection.receive_json()
        assert edited["event"] == "ROOM:EDIT_MESSAGE"
        assert edited["data"]["body"] == "changed"

        send(connection, "MESSAGE:DELETE", roomId=room_id, userId=carol, messageId=message_id)
        assert connection.receive_json()["event"] == "connect_error"

        send(connection, "MESSAGE:DELETE", roomId=room_id, userId=bob, messageId=message_id)
        deleted = connection.receive_json()
        assert deleted["event"] == "ROOM:DELETE_MESSAGE"
        assert deleted["data"]["id"] == message_id

    with session_factory() as session:
        assert session.get(Message, message_id) is None


def test_disconnect_leaves_entered_rooms(client, session_factory, create_user):
    alice = create_user("alice")
    room_id = make_room(session_factory, subscribers=[alice])

    with client.websocket_connect("/ws") as connection:
        send(connection, "USER:CONNECT", userId=alice)
        connected = connection.receive_json()
        assert connected["event"] == "USER:CONNECTED"
        assert connected["data"]["socketId"]

        send(connection, "ROOM:ENTER", roomId=room_id, userId=alice)
        connection.receive_json()
        assert online_ids(session_factory, room_id) == [alice]

    assert online_ids(session_factory, room_id) == []
    with session_factory() as session:
        assert session.get(User, alice).socket_id is None


def test_malformed_frames_and_unknown_events(client):
    with client.websocket_connect("/ws") as connection:
        connection.send_text("not json")
        assert connection.receive_json()["data"]["message"] == "Malformed frame"

        send(connection, "ROOM:DANCE")
        assert connection.receive_json()["data"]["message"] == "Unknown event ROOM:DANCE"

        send(connection, "ROOM:ENTER", roomId="abc")
        error = connection.receive_json()
        assert error["event"] == "connect_error"
        assert error["data"]["message"].startswith("Invalid payload for ROOM:ENTER")

        send(connection, "ping")
        assert connection.receive_json() == {"event": "pong", "data": {}}


def test_keepalive_pings_idle_connection(client) -> None:
    """Server side keepalive pings keep an idle socket open."""

    settings = ws_module.settings
    original_timeout = settings.websocket_keepalive_timeout_seconds
    original_interval = settings.websocket_keepalive_ping_interval_seconds
    settings.websocket_keepalive_timeout_seconds = 0.1
    settings.websocket_keepalive_ping_interval_seconds = 0.05

    try:
        with client.websocket_connect("/ws") as connection:
            time.sleep(0.15)
            assert connection.receive_json() == {"event": "ping", "data": {}}
            send(connection, "pong")

            time.sleep(0.12)
            assert connection.receive_json()["event"] == "ping"

            send(connection, "ping")
            frame = connection.receive_json()
            while frame["event"] == "ping":
                frame = connection.receive_json()
            assert frame["event"] == "pong"
    finally:
        settings.websocket_keepalive_timeout_seconds = original_timeout
        settings.websocket_keepalive_ping_interval_seconds = original_interval


def test_store_failure_is_reported_and_connection_survives(client, session_factory, create_user, monkeypatch):
    alice = create_user("alice")
    room_id = make_room(session_factory, subscribers=[alice])

    def unavailable(db, room_id, user_id):
        raise OperationalError("INSERT INTO room_online_users", {}, Exception("database is locked"))

    monkeypatch.setattr(ws_module.room_service, "enter_room", unavailable)

    with client.websocket_connect("/ws") as connection:
        send(connection, "ROOM:ENTER", roomId=room_id, userId=alice)
        assert connection.receive_json() == {
            "event": "connect_error",
            "data": {"message": "Internal server error"},
        }

        send(connection, "ping")
        assert connection.receive_json() == {"event": "pong", "data": {}}


def test_unexpected_failure_is_reported_and_connection_survives(client, session_factory, create_user, monkeypatch):
    alice = create_user("alice")
    room_id = make_room(session_factory, subscribers=[alice])

    def broken(db, room_id, user_id, body):
        raise RuntimeError("boom")

    monkeypatch.setattr(ws_module.message_service, "create_message", broken)

    with client.websocket_connect("/ws") as connection:
        send(connection, "MESSAGE:NEW", roomId=room_id, userId=alice, body="hello")
        assert connection.receive_json()["data"]["message"] == "Internal server error"

        send(connection, "ping")
        assert connection.receive_json()["event"] == "pong"


def test_binary_frame_is_malformed(client):
    with client.websocket_connect("/ws") as connection:
        connection.send_bytes(b'{"event": "ping", "data": {}}')
        assert connection.receive_json() == {
            "event": "connect_error",
            "data": {"message": "Malformed frame"},
        }

        send(connection, "ping")
        assert connection.receive_json()["event"] == "pong"
