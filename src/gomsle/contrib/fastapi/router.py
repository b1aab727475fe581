"""
HTTP endpoints for FastAPI.

The routers are a thin translation layer: they build commands from the
HTTP request, send them through the dispatcher and turn the result into
a redirect or a JSON response.

- ``create_connect_router``: OAuth2/OIDC authorize, token and logout.
- ``create_account_router``: registration, confirmation, password reset
  and interactive sign-in. Invalid commands raise ``ValidationError``,
  answered by the handler from ``register_exception_handlers``.

Usage:
    container = GomsleContainer()
    container.wire(modules=["gomsle.contrib.fastapi.router"])
    app.include_router(create_account_router())
    app.include_router(create_connect_router())
    register_exception_handlers(app)
"""

import secrets
from typing import Any, Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from gomsle.application.commands import (
    Authorize,
    Confirm,
    Exchange,
    Forgot,
    Login,
    Logout,
    Register,
    Reset,
)
from gomsle.application.queries import GetTwoFactorProviders
from gomsle.application.results import CommandResult, ProtocolStatus
from gomsle.application.urls import append_params
from gomsle.config import GomsleSettings
from gomsle.contrib.dependency_injector import GomsleContainer
from gomsle.domain.errors import ValidationError

SESSION_COOKIE = "gomsle_session"


def _oauth_error(errors: dict[str, str]) -> JSONResponse:
    code, description = next(iter(errors.items()))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": code, "error_description": description},
        headers={"Cache-Control": "no-store"},
    )


def _valid(result: CommandResult) -> Any:
    if not result.is_valid:
        raise ValidationError(result.errors)
    return result.result


class RegisterRequest(BaseModel):
    email: str
    password: str
    user_name: Optional[str] = None
    return_url: Optional[str] = None
    confirmation_url: Optional[str] = None


class ConfirmRequest(BaseModel):
    user_id: str
    token: str
    return_url: Optional[str] = None


class ForgotRequest(BaseModel):
    email: str
    reset_url: str


class ResetRequest(BaseModel):
    user_id: str
    token: str
    password: str
    return_url: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


# -----------------------------------------------------------------------------
# Module-level handlers (required for dependency-injector wiring)
# -----------------------------------------------------------------------------


@inject
async def authorize(
    request: Request,
    client_id: Optional[str] = None,
    redirect_uri: Optional[str] = None,
    response_type: Optional[str] = None,
    scope: Optional[str] = None,
    state: Optional[str] = None,
    nonce: Optional[str] = None,
    request_id: Optional[str] = None,
    dispatcher: Any = Depends(Provide[GomsleContainer.dispatcher]),
    settings: GomsleSettings = Depends(Provide[GomsleContainer.settings]),
):
    cmd = Authorize(
        client_id=client_id,
        redirect_uri=redirect_uri,
        response_type=response_type,
        scope=scope,
        state=state,
        nonce=nonce,
        request_id=request_id,
        session_id=request.cookies.get(SESSION_COOKIE),
    )
    result = await dispatcher.send(cmd)

    if result.status == ProtocolStatus.CHALLENGE:
        return RedirectResponse(
            append_params(settings.login_url, {"requestId": result.request_id}),
            status_code=status.HTTP_302_FOUND,
        )
    if result.status == ProtocolStatus.DENIED:
        return _oauth_error(result.errors)

    return RedirectResponse(result.redirect_url, status_code=status.HTTP_302_FOUND)


@inject
async def token(
    grant_type: Optional[str] = Form(None),
    client_id: Optional[str] = Form(None),
    code: Optional[str] = Form(None),
    redirect_uri: Optional[str] = Form(None),
    refresh_token: Optional[str] = Form(None),
    dispatcher: Any = Depends(Provide[GomsleContainer.dispatcher]),
):
    cmd = Exchange(
        grant_type=grant_type,
        client_id=client_id,
        code=code,
        redirect_uri=redirect_uri,
        refresh_token=refresh_token,
    )
    result = await dispatcher.send(cmd)

    if result.status == ProtocolStatus.DENIED:
        return _oauth_error(result.errors)

    return JSONResponse(
        content=result.tokens.to_dict(),
        headers={"Cache-Control": "no-store", "Pragma": "no-cache"},
    )


@inject
async def logout(
    request: Request,
    client_id: Optional[str] = None,
    post_logout_redirect_uri: Optional[str] = None,
    dispatcher: Any = Depends(Provide[GomsleContainer.dispatcher]),
):
    cmd = Logout(
        session_id=request.cookies.get(SESSION_COOKIE),
        client_id=client_id,
        post_logout_redirect_uri=post_logout_redirect_uri,
    )
    result = await dispatcher.send(cmd)

    if result.redirect_url:
        response = RedirectResponse(
            result.redirect_url, status_code=status.HTTP_302_FOUND
        )
    else:
        response = JSONResponse(content={"success": result.success})
    response.delete_cookie(SESSION_COOKIE)
    return response


@inject
async def register(
    data: RegisterRequest,
    dispatcher: Any = Depends(Provide[GomsleContainer.dispatcher]),
):
    cmd = Register(
        email=data.email,
        password=data.password,
        user_name=data.user_name,
        return_url=data.return_url,
        confirmation_url=data.confirmation_url,
    )
    user = _valid(await dispatcher.send(cmd))
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=user.to_dict())


@inject
async def confirm(
    data: ConfirmRequest,
    dispatcher: Any = Depends(Provide[GomsleContainer.dispatcher]),
):
    cmd = Confirm(user_id=data.user_id, token=data.token, return_url=data.return_url)
    return {"return_url": _valid(await dispatcher.send(cmd))}


@inject
async def forgot(
    data: ForgotRequest,
    dispatcher: Any = Depends(Provide[GomsleContainer.dispatcher]),
):
    _valid(await dispatcher.send(Forgot(email=data.email, reset_url=data.reset_url)))
    return {"success": True}


@inject
async def reset(
    data: ResetRequest,
    dispatcher: Any = Depends(Provide[GomsleContainer.dispatcher]),
):
    cmd = Reset(
        user_id=data.user_id,
        token=data.token,
        password=data.password,
        return_url=data.return_url,
    )
    return {"return_url": _valid(await dispatcher.send(cmd))}


@inject
async def login(
    data: LoginRequest,
    dispatcher: Any = Depends(Provide[GomsleContainer.dispatcher]),
):
    cmd = Login(
        email=data.email,
        password=data.password,
        session_id=secrets.token_urlsafe(32),
    )
    sign_in = _valid(await dispatcher.send(cmd))

    response = JSONResponse(
        content={
            "succeeded": sign_in.succeeded,
            "user_id": sign_in.user_id,
            "requires_two_factor": sign_in.requires_two_factor,
        }
    )
    response.set_cookie(
        SESSION_COOKIE, sign_in.session_id, httponly=True, samesite="lax"
    )
    return response


@inject
async def two_factor_providers(
    request: Request,
    dispatcher: Any = Depends(Provide[GomsleContainer.dispatcher]),
):
    query = GetTwoFactorProviders(session_id=request.cookies.get(SESSION_COOKIE))
    result = _valid(await dispatcher.query(query))
    return {"providers": result.providers}


# -----------------------------------------------------------------------------
# Router Factories
# -----------------------------------------------------------------------------


def create_connect_router(prefix: str = "/connect") -> APIRouter:
    """
    Factory to create a FastAPI router with the OAuth2/OIDC endpoints.
    """
    router = APIRouter(prefix=prefix, tags=["connect"])

    router.add_api_route("/authorize", authorize, methods=["GET"])
    router.add_api_route("/token", token, methods=["POST"])
    router.add_api_route("/logout", logout, methods=["GET"])

    return router


def create_account_router(prefix: str = "/account") -> APIRouter:
    """
    Factory to create a FastAPI router with the account endpoints.
    """
    router = APIRouter(prefix=prefix, tags=["account"])

    router.add_api_route("/register", register, methods=["POST"])
    router.add_api_route("/confirm", confirm, methods=["POST"])
    router.add_api_route("/forgot", forgot, methods=["POST"])
    router.add_api_route("/reset", reset, methods=["POST"])
    router.add_api_route("/login", login, methods=["POST"])
    router.add_api_route("/two-factor-providers", two_factor_providers, methods=["GET"])

    return router
