"""Integration tests for sign-up, confirmation, sign-in and token refresh."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from warbler.models import Token, TokenType, User

JACK = {
    "firstName": "Jack",
    "lastName": "Bourne",
    "username": "jackb",
    "email": "jack@example.com",
    "password": "Passw0rd",
}


def sign_up(client: TestClient, **overrides: Any):
    return client.post("/api/v1/auth/sign-up", json={**JACK, **overrides})


def count_users(session_factory) -> int:
    with session_factory() as session:
        return session.execute(select(func.count()).select_from(User)).scalar_one()


def test_sign_up_creates_inactive_user_with_one_token_and_one_email(client, session_factory, mailer):
    response = sign_up(client)

    assert response.status_code == 200, response.text
    assert response.json() == {"status": "ok"}

    with session_factory() as session:
        user = session.execute(select(User).where(User.username == "jackb")).scalar_one()
        assert user.active is False
        assert user.hashed_password != JACK["password"]
        tokens = session.execute(select(Token).where(Token.user_id == user.id)).scalars().all()
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.CONFIRM_EMAIL

    assert len(mailer.sent) == 1
    assert mailer.sent[0]["email"] == "jack@example.com"
    assert mailer.sent[0]["token"] == tokens[0].body


@pytest.mark.parametrize("email", ["jack.example.com", "jack@", "@example.com", "jack example@example.com"])
def test_sign_up_rejects_bad_email_without_creating_user(client, session_factory, mailer, email):
    response = sign_up(client, email=email)

    assert response.status_code == 422
    body = response.json()
    assert body["status"] == "failed"
    assert body["code"] == 422
    assert "Wrong email format" in body["message"]
    assert count_users(session_factory) == 0
    assert mailer.sent == []


@pytest.mark.parametrize("password", ["passw0rd", "PASSW0RD", "Password", "Pa0rd"])
def test_sign_up_rejects_weak_password_without_creating_user(client, session_factory, password):
    response = sign_up(client, password=password)

    assert response.status_code == 422
    assert response.json()["message"].startswith("Password must be at least 6 characters")
    assert count_users(session_factory) == 0


def test_sign_up_checks_username_before_email(client, create_user):
    create_user("jackb")

    response = sign_up(client, email="jack@example.com")

    assert response.status_code == 409
    assert response.json()["message"] == "This username already exists"


def test_sign_up_rejects_duplicate_email(client, create_user):
    create_user("jack")

    response = sign_up(client, email="jack@example.com")

    assert response.status_code == 409
    assert response.json()["message"] == "This email already exists"


def test_sign_up_mail_failure_keeps_created_user(client, session_factory, mailer):
    mailer.fail = True

    response = sign_up(client)

    assert response.status_code == 500
    assert response.json() == {"status": "failed", "code": 500, "message": "Internal server error"}
    assert count_users(session_factory) == 1


def test_confirm_email_activates_once(client, session_factory, mailer):
    sign_up(client)
    token = mailer.sent[0]["token"]

    first = client.post(f"/api/v1/auth/confirm-email/{token}")
    assert first.status_code == 200, first.text
    body = first.json()
    assert body["user"]["active"] is True
    assert body["accessToken"] and body["refreshToken"]

    second = client.post(f"/api/v1/auth/confirm-email/{token}")
    assert second.status_code == 404
    assert second.json()["message"] == "Token not found"


def test_confirm_email_rejects_expired_token(client, session_factory, mailer):
    sign_up(client)
    body = mailer.sent[0]["token"]
    with session_factory() as session:
        token = session.execute(select(Token).where(Token.body == body)).scalar_one()
        token.created_at = datetime.now(timezone.utc) - timedelta(minutes=10)
        session.commit()

    response = client.post(f"/api/v1/auth/confirm-email/{body}")

    assert response.status_code == 417
    assert response.json()["message"] == "Token is broken or expired"
    with session_factory() as session:
        assert session.execute(select(User.active)).scalar_one() is False


def test_sign_in_rejects_inactive_account(client):
    sign_up(client)

    response = client.post(
        "/api/v1/auth/sign-in",
        json={"emailOrUsername": "jackb", "password": "Passw0rd"},
    )

    assert response.status_code == 403
    assert response.json()["message"] == "Account not activated"


def test_sign_in_rejects_wrong_password(client, create_user):
    create_user("jack")

    response = client.post(
        "/api/v1/auth/sign-in",
        json={"emailOrUsername": "jack", "password": "Wr0ngpass"},
    )

    assert response.status_code == 417
    assert response.json()["message"] == "User doesn't exist or password doesn't match"


def test_sign_in_by_email_returns_token_pair(client, create_user):
    user_id = create_user("jack")

    response = client.post(
        "/api/v1/auth/sign-in",
        json={"emailOrUsername": "jack@example.com", "password": "Passw0rd"},
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["status"] == "ok"
    assert body["user"]["id"] == user_id
    assert "hashedPassword" not in body["user"]

    current = client.get("/api/v1/users/current", headers={"x-auth-token": body["accessToken"]})
    assert current.status_code == 200
    assert current.json()["user"]["username"] == "jack"


def test_refresh_access_token(client, create_user):
    create_user("jack")
    signed_in = client.post(
        "/api/v1/auth/sign-in",
        json={"emailOrUsername": "jack", "password": "Passw0rd"},
    ).json()

    response = client.get(
        "/api/v1/auth/refresh-access-token",
        headers={"x-refresh-token": signed_in["refreshToken"]},
    )
    assert response.status_code == 200, response.text
    assert response.json()["user"]["username"] == "jack"

    broken = client.get(
        "/api/v1/auth/refresh-access-token",
        headers={"x-refresh-token": signed_in["accessToken"]},
    )
    assert broken.status_code == 403
    assert broken.json()["message"] == "Refresh token is broken or expired"


def test_resend_confirm_email_replaces_token(client, session_factory, mailer, create_user, auth_headers):
    user_id = create_user("pending", active=False)

    response = client.post("/api/v1/auth/resend-confirm-email", headers=auth_headers(user_id))

    assert response.status_code == 200, response.text
    assert len(mailer.sent) == 1
    with session_factory() as session:
        tokens = session.execute(select(Token).where(Token.user_id == user_id)).scalars().all()
    assert [token.body for token in tokens] == [mailer.sent[0]["token"]]


def test_resend_confirm_email_for_active_user_conflicts(client, create_user, auth_headers):
    user_id = create_user("jack")

    response = client.post("/api/v1/auth/resend-confirm-email", headers=auth_headers(user_id))

    assert response.status_code == 409
    assert response.json()["message"] == "User already activated"


def test_protected_route_requires_token(client):
    response = client.get("/api/v1/users/current", headers={"x-auth-token": "garbage"})

    assert response.status_code == 401
    assert response.json() == {"status": "failed", "code": 401, "message": "Unauthorized"}


def test_sign_in_with_mixed_case_email_as_entered_at_sign_up(client, mailer):
    sign_up(client, email="Jack@Example.COM")
    client.post(f"/api/v1/auth/confirm-email/{mailer.sent[0]['token']}")

    response = client.post(
        "/api/v1/auth/sign-in",
        json={"emailOrUsername": "Jack@Example.COM", "password": "Passw0rd"},
    )

    assert response.status_code == 200, response.text
    assert response.json()["user"]["username"] == "jackb"


def test_multipart_sign_up_stores_avatar(client, session_factory, mailer):
    response = client.post(
        "/api/v1/auth/sign-up",
        data=JACK,
        files={"file": ("me.png", b"\x89PNG\r\n", "image/png")},
    )

    assert response.status_code == 200, response.text
    with session_factory() as session:
        user = session.execute(select(User)).scalar_one()
        assert user.avatar.startswith("/public/avatars/images/")
        assert user.avatar.endswith("-me.png")
    assert len(mailer.sent) == 1


def test_multipart_sign_up_rejects_non_image_avatar(client, session_factory, mailer):
    response = client.post(
        "/api/v1/auth/sign-up",
        data=JACK,
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )

    assert response.status_code == 422
    assert response.json()["message"] == "Avatar must be an image file"
    assert count_users(session_factory) == 0
    assert mailer.sent == []


def test_multipart_sign_up_validates_fields(client, session_factory):
    response = client.post("/api/v1/auth/sign-up", data={**JACK, "email": "jack.example.com"})

    assert response.status_code == 422
    assert "Wrong email format" in response.json()["message"]
    assert count_users(session_factory) == 0
