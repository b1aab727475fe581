"""
Tests for the FastAPI connect router.
"""

import pytest
from unittest.mock import AsyncMock
from fastapi import FastAPI
from fastapi.testclient import TestClient
from dependency_injector import providers

from gomsle.application.commands import Authorize, Exchange, Logout
from gomsle.application.results import (
    AuthorizeResult,
    ExchangeResult,
    LogoutResult,
    TokenSet,
)
from gomsle.config import GomsleSettings
from gomsle.contrib.dependency_injector import GomsleContainer
from gomsle.contrib.fastapi import (
    SESSION_COOKIE,
    create_connect_router,
    register_exception_handlers,
)
from gomsle.domain.errors import ProtocolError, ProtocolErrorCodes
from gomsle.identity import Principal


@pytest.fixture
def mock_dispatcher():
    return AsyncMock()


@pytest.fixture
def app(mock_dispatcher):
    container = GomsleContainer()
    container.settings.override(
        providers.Object(
            GomsleSettings(
                issuer="https://id.gomsle.com",
                signing_key="test-secret",
                login_url="https://id.gomsle.com/account/login",
            )
        )
    )
    container.dispatcher.override(providers.Object(mock_dispatcher))
    container.wire(modules=["gomsle.contrib.fastapi.router"])

    app = FastAPI()
    app.include_router(create_connect_router())
    register_exception_handlers(app)

    yield app

    container.unwire()


@pytest.fixture
def client(app):
    return TestClient(app, follow_redirects=False)


# -----------------------------------------------------------------------------
# AUTHORIZE
# -----------------------------------------------------------------------------


def test_authorize_challenge_redirects_to_login(client, mock_dispatcher):
    mock_dispatcher.send.return_value = AuthorizeResult.challenge("req-1")

    response = client.get(
        "/connect/authorize",
        params={"client_id": "app-1", "redirect_uri": "https://app/cb"},
    )

    assert response.status_code == 302
    assert (
        response.headers["location"]
        == "https://id.gomsle.com/account/login?requestId=req-1"
    )


def test_authorize_passes_session_cookie(client, mock_dispatcher):
    mock_dispatcher.send.return_value = AuthorizeResult.challenge("req-1")
    client.cookies.set(SESSION_COOKIE, "browser-1")

    client.get(
        "/connect/authorize",
        params={
            "client_id": "app-1",
            "response_type": "code",
            "scope": "openid",
            "state": "xyz",
        },
    )

    cmd = mock_dispatcher.send.call_args[0][0]
    assert isinstance(cmd, Authorize)
    assert cmd.session_id == "browser-1"
    assert cmd.client_id == "app-1"
    assert cmd.state == "xyz"


def test_authorize_success_redirects_to_client(client, mock_dispatcher):
    mock_dispatcher.send.return_value = AuthorizeResult.success(
        principal=Principal(user_id="u1"),
        code="c0de",
        redirect_url="https://app/cb?code=c0de&state=xyz",
        request_id="req-1",
    )

    response = client.get("/connect/authorize", params={"request_id": "req-1"})

    assert response.status_code == 302
    assert response.headers["location"] == "https://app/cb?code=c0de&state=xyz"


def test_authorize_denied(client, mock_dispatcher):
    mock_dispatcher.send.return_value = AuthorizeResult.denied(
        ProtocolError(ProtocolErrorCodes.INVALID_CLIENT, "The client_id is unknown.")
    )

    response = client.get("/connect/authorize", params={"client_id": "nope"})

    assert response.status_code == 400
    assert response.json() == {
        "error": "invalid_client",
        "error_description": "The client_id is unknown.",
    }


# -----------------------------------------------------------------------------
# TOKEN
# -----------------------------------------------------------------------------


def test_token_success(client, mock_dispatcher):
    mock_dispatcher.send.return_value = ExchangeResult.success(
        TokenSet(access_token="at", scope="openid", id_token="it"),
        Principal(user_id="u1"),
    )

    response = client.post(
        "/connect/token",
        data={
            "grant_type": "authorization_code",
            "client_id": "app-1",
            "code": "c0de",
            "redirect_uri": "https://app/cb",
        },
    )

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store"
    body = response.json()
    assert body["access_token"] == "at"
    assert body["id_token"] == "it"
    assert "refresh_token" not in body

    cmd = mock_dispatcher.send.call_args[0][0]
    assert isinstance(cmd, Exchange)
    assert cmd.code == "c0de"


def test_token_denied(client, mock_dispatcher):
    mock_dispatcher.send.return_value = ExchangeResult.denied(
        ProtocolError(ProtocolErrorCodes.INVALID_GRANT, "The grant is invalid.")
    )

    response = client.post(
        "/connect/token", data={"grant_type": "authorization_code", "code": "old"}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_grant"


# -----------------------------------------------------------------------------
# LOGOUT
# -----------------------------------------------------------------------------


def test_logout_redirects_and_clears_cookie(client, mock_dispatcher):
    mock_dispatcher.send.return_value = LogoutResult(redirect_url="https://app/bye")
    client.cookies.set(SESSION_COOKIE, "browser-1")

    response = client.get(
        "/connect/logout",
        params={"client_id": "app-1", "post_logout_redirect_uri": "https://app/bye"},
    )

    assert response.status_code == 302
    assert response.headers["location"] == "https://app/bye"
    assert SESSION_COOKIE in response.headers["set-cookie"]
    cmd = mock_dispatcher.send.call_args[0][0]
    assert isinstance(cmd, Logout)
    assert cmd.session_id == "browser-1"
    assert cmd.client_id == "app-1"
    assert cmd.post_logout_redirect_uri == "https://app/bye"


def test_logout_without_redirect(client, mock_dispatcher):
    mock_dispatcher.send.return_value = LogoutResult()

    response = client.get("/connect/logout")

    assert response.status_code == 200
    assert response.json() == {"success": True}


# -----------------------------------------------------------------------------
# EXCEPTION HANDLERS
# -----------------------------------------------------------------------------


def test_protocol_error_raised_by_dispatcher(client, mock_dispatcher):
    mock_dispatcher.send.side_effect = ProtocolError(
        ProtocolErrorCodes.INVALID_REQUEST, "Malformed request."
    )

    response = client.get("/connect/authorize")

    assert response.status_code == 400
    assert response.json() == {
        "error": "invalid_request",
        "error_description": "Malformed request.",
    }
