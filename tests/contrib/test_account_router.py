"""
Tests for the FastAPI account router, wired to a real container.
"""

from urllib.parse import parse_qs, urlsplit

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from dependency_injector import providers

from gomsle.config import GomsleSettings
from gomsle.contrib.dependency_injector import GomsleContainer
from gomsle.contrib.fastapi import (
    SESSION_COOKIE,
    create_account_router,
    create_connect_router,
    register_exception_handlers,
)


@pytest.fixture
def container():
    container = GomsleContainer()
    container.settings.override(
        providers.Object(
            GomsleSettings(issuer="https://id.gomsle.com", signing_key="test-secret")
        )
    )
    container.wire(modules=["gomsle.contrib.fastapi.router"])

    yield container

    container.unwire()


@pytest.fixture
def client(container):
    app = FastAPI()
    app.include_router(create_account_router())
    app.include_router(create_connect_router())
    register_exception_handlers(app)
    return TestClient(app, follow_redirects=False)


def _register(client, email="jane@gomsle.com"):
    return client.post(
        "/account/register",
        json={
            "email": email,
            "password": "Passw0rd!",
            "confirmation_url": "https://app.gomsle.com/confirm",
        },
    )


def _last_link(container):
    link = container.email_sender().sent[-1].body_text.split()[-1]
    return {k: v[0] for k, v in parse_qs(urlsplit(link).query).items()}


def _failures(response):
    return [(f["field"], f["code"]) for f in response.json()["details"]["failures"]]


# -----------------------------------------------------------------------------
# REGISTRATION
# -----------------------------------------------------------------------------


def test_register(client):
    response = _register(client)

    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "jane@gomsle.com"
    assert body["email_confirmed"] is False
    assert "password_hash" not in body


def test_register_invalid_email(client):
    response = _register(client, email="not-an-email")

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_FAILED"
    assert _failures(response) == [("Email", "InvalidEmail")]


def test_register_duplicate_email(client):
    _register(client)

    response = _register(client, email="JANE@gomsle.com")

    assert response.status_code == 400
    assert _failures(response) == [("Email", "DuplicateEmail")]


def test_confirm_then_login_sets_session(client, container):
    _register(client)
    params = _last_link(container)

    confirmed = client.post(
        "/account/confirm",
        json={
            "user_id": params["userId"],
            "token": params["token"],
            "return_url": "https://app.gomsle.com/home",
        },
    )
    login = client.post(
        "/account/login", json={"email": "jane@gomsle.com", "password": "Passw0rd!"}
    )

    assert confirmed.json() == {"return_url": "https://app.gomsle.com/home"}
    assert login.status_code == 200
    assert login.json()["succeeded"] is True
    assert client.cookies.get(SESSION_COOKIE)


def test_login_before_confirmation(client):
    _register(client)

    response = client.post(
        "/account/login", json={"email": "jane@gomsle.com", "password": "Passw0rd!"}
    )

    assert response.status_code == 400
    assert _failures(response) == [("Email", "EmailNotConfirmed")]
    assert SESSION_COOKIE not in response.cookies


def test_login_wrong_password(client):
    _register(client)

    response = client.post(
        "/account/login", json={"email": "jane@gomsle.com", "password": "nope"}
    )

    assert _failures(response) == [("Email", "InvalidCredentials")]


# -----------------------------------------------------------------------------
# PASSWORD RESET
# -----------------------------------------------------------------------------


def test_forgot_unknown_email_succeeds(client, container):
    response = client.post(
        "/account/forgot",
        json={"email": "ghost@gomsle.com", "reset_url": "https://app.gomsle.com/reset"},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert container.email_sender().sent == []


def test_forgot_then_reset(client, container):
    _register(client)
    client.post(
        "/account/forgot",
        json={"email": "jane@gomsle.com", "reset_url": "https://app.gomsle.com/reset"},
    )
    params = _last_link(container)

    reset = client.post(
        "/account/reset",
        json={"user_id": params["userId"], "token": params["token"], "password": "N3w!"},
    )
    replay = client.post(
        "/account/reset",
        json={"user_id": params["userId"], "token": params["token"], "password": "x"},
    )

    assert reset.status_code == 200
    assert _failures(replay) == [("Token", "InvalidToken")]


# -----------------------------------------------------------------------------
# TWO-FACTOR AND LOGOUT
# -----------------------------------------------------------------------------


def test_two_factor_providers_without_login(client):
    response = client.get("/account/two-factor-providers")

    assert response.status_code == 400
    assert _failures(response) == [("SessionId", "NoLoginInProgress")]


def test_logout_ignores_foreign_redirect(client):
    response = client.get(
        "/connect/logout",
        params={"post_logout_redirect_uri": "https://evil.example/phish"},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}


def test_logout_follows_local_redirect(client):
    response = client.get(
        "/connect/logout", params={"post_logout_redirect_uri": "/signed-out"}
    )

    assert response.status_code == 302
    assert response.headers["location"] == "/signed-out"
