"""Integration tests for room management and message history."""

from __future__ import annotations

from warbler.models import Message, UserRole


def create_room(client, headers, **payload):
    response = client.post("/api/v1/rooms", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["room"]


def test_private_room_with_invitee_marks_both_online(client, create_user, auth_headers):
    alice = create_user("alice")
    bob = create_user("bob")

    room = create_room(client, auth_headers(alice), roomName="Secret", isPublic=False, userToAdd=bob)

    assert room["creatorId"] == alice
    assert room["isPublic"] is False
    assert sorted(room["subscriberIds"]) == sorted([alice, bob])
    assert sorted(room["usersOnline"]) == sorted([alice, bob])


def test_public_room_has_no_creator(client, create_user, auth_headers):
    alice = create_user("alice")

    room = create_room(client, auth_headers(alice), roomName="Lobby", isPublic=True)

    assert room["creatorId"] is None
    assert room["subscriberIds"] == [alice]


def test_create_room_with_unknown_invitee(client, create_user, auth_headers):
    alice = create_user("alice")

    response = client.post(
        "/api/v1/rooms",
        json={"roomName": "Secret", "isPublic": False, "userToAdd": 999},
        headers=auth_headers(alice),
    )

    assert response.status_code == 404
    assert client.get("/api/v1/rooms").json()["rooms"] == []


def test_unsubscribe_absent_user_is_noop(client, create_user, auth_headers):
    alice = create_user("alice")
    bob = create_user("bob")
    room = create_room(client, auth_headers(alice), roomName="Lobby", isPublic=True)

    response = client.put(f"/api/v1/rooms/unsubscribe/{room['id']}", headers=auth_headers(bob))

    assert response.status_code == 200
    assert response.json()["room"] == room


def test_unsubscribe_clears_presence(client, create_user, auth_headers):
    alice = create_user("alice")
    room = create_room(client, auth_headers(alice), roomName="Lobby", isPublic=True)

    response = client.put(f"/api/v1/rooms/unsubscribe/{room['id']}", headers=auth_headers(alice))

    assert response.json()["room"]["subscriberIds"] == []
    assert response.json()["room"]["usersOnline"] == []


def test_private_room_gates(client, create_user, auth_headers):
    alice = create_user("alice")
    bob = create_user("bob")
    carol = create_user("carol")
    room = create_room(client, auth_headers(alice), roomName="Secret", isPublic=False)

    subscribe = client.put(f"/api/v1/rooms/subscribe/{room['id']}", headers=auth_headers(bob))
    assert subscribe.status_code == 403

    invite_by_stranger = client.put(
        f"/api/v1/rooms/{room['id']}", params={"userId": carol}, headers=auth_headers(bob)
    )
    assert invite_by_stranger.status_code == 403
    assert invite_by_stranger.json()["message"] == "You have no rights to do so"

    invite = client.put(f"/api/v1/rooms/{room['id']}", params={"userId": carol}, headers=auth_headers(alice))
    assert invite.status_code == 200
    assert carol in invite.json()["room"]["subscriberIds"]

    delete_by_stranger = client.delete(f"/api/v1/rooms/{room['id']}", headers=auth_headers(bob))
    assert delete_by_stranger.status_code == 403
    assert client.delete(f"/api/v1/rooms/{room['id']}", headers=auth_headers(alice)).status_code == 200
    assert client.get(f"/api/v1/rooms/{room['id']}").status_code == 404


def test_public_room_deleted_by_admin_only(client, create_user, auth_headers):
    alice = create_user("alice")
    admin = create_user("admin", role=UserRole.ADMIN)
    room = create_room(client, auth_headers(alice), roomName="Lobby", isPublic=True)

    assert client.delete(f"/api/v1/rooms/{room['id']}", headers=auth_headers(alice)).status_code == 403
    assert client.delete(f"/api/v1/rooms/{room['id']}", headers=auth_headers(admin)).status_code == 200


def test_listing_search_and_subscriptions(client, create_user, auth_headers):
    alice = create_user("alice")
    bob = create_user("bob")
    first = create_room(client, auth_headers(alice), roomName="Python club", isPublic=True)
    second = create_room(client, auth_headers(bob), roomName="Rust club", isPublic=True)

    listed = client.get("/api/v1/rooms").json()["rooms"]
    assert [room["id"] for room in listed] == [second["id"], first["id"]]

    found = client.get("/api/v1/rooms/search", params={"name": "python"}).json()["rooms"]
    assert [room["id"] for room in found] == [first["id"]]

    client.put(f"/api/v1/rooms/subscribe/{second['id']}", headers=auth_headers(alice))
    subscribed = client.get("/api/v1/rooms/subscribed", headers=auth_headers(alice)).json()["rooms"]
    assert {room["id"] for room in subscribed} == {first["id"], second["id"]}


def test_message_history_is_newest_first_and_private(client, session_factory, create_user, auth_headers):
    alice = create_user("alice")
    bob = create_user("bob")
    room = create_room(client, auth_headers(alice), roomName="Secret", isPublic=False)
    with session_factory() as session:
        session.add_all(
            [Message(room_id=room["id"], author_id=alice, body=f"message {index}") for index in range(3)]
        )
        session.commit()

    response = client.get(f"/api/v1/messages/room/{room['id']}", params={"limit": 2}, headers=auth_headers(alice))
    assert response.status_code == 200
    assert [message["body"] for message in response.json()["messages"]] == ["message 2", "message 1"]

    denied = client.get(f"/api/v1/messages/room/{room['id']}", headers=auth_headers(bob))
    assert denied.status_code == 403
