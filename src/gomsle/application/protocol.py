"""
Authorization protocol engine.

Implements the OAuth2/OIDC authorization-code and refresh-token flows:

    UNAUTHENTICATED → CHALLENGE_PENDING → AUTHENTICATED → EXCHANGED

Protocol failures are never raised to the caller. Every public method
returns a discriminated result; a denial carries ``{error_code: message}``
so the boundary can answer with the matching OAuth2 error response.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import urlsplit

from gomsle.application.commands import Authorize, Exchange, Logout
from gomsle.application.registries import AccountRegistry, ApplicationRegistry
from gomsle.application.results import (
    AuthorizeResult,
    ExchangeResult,
    LogoutResult,
    TokenSet,
)
from gomsle.application.urls import append_params
from gomsle.config import GomsleSettings
from gomsle.domain.aggregates import Application
from gomsle.domain.authorization import AuthorizationRequest, RefreshGrant
from gomsle.domain.errors import ProtocolError, ProtocolErrorCodes
from gomsle.domain.value_objects import (
    AccountRole,
    STANDARD_SCOPES,
    is_allowed_response_type,
    normalize_response_type,
    parse_scope_string,
)
from gomsle.identity import Principal
from gomsle.infrastructure.ports.credentials import CredentialStorePort
from gomsle.infrastructure.ports.grants import (
    AuthorizationRequestStorePort,
    GrantStorePort,
    LoginSessionStorePort,
)
from gomsle.infrastructure.ports.signing import TokenSignerPort

logger = logging.getLogger("gomsle.application.protocol")

GRANT_TYPE_AUTHORIZATION_CODE = "authorization_code"
GRANT_TYPE_REFRESH_TOKEN = "refresh_token"

_INVALID_GRANT_MESSAGE = "The grant is invalid, expired or was issued to another client."


def _is_local_path(uri: str) -> bool:
    # Browsers read "//host" and "/\host" as another origin
    parts = urlsplit(uri)
    return (
        not parts.scheme
        and not parts.netloc
        and uri.startswith("/")
        and not uri.startswith("//")
        and "\\" not in uri
    )


def _invalid_grant() -> ProtocolError:
    # Same denial for every grant failure so the caller cannot tell
    # which element was wrong.
    return ProtocolError(ProtocolErrorCodes.INVALID_GRANT, _INVALID_GRANT_MESSAGE)


class AuthorizationProtocolEngine:
    """
    OAuth2/OIDC authorize, token and logout endpoints as a state machine.

    The Application id is the OAuth2 ``client_id``. Interactive login is
    represented by a login session keyed by the boundary's session id.

    Usage:
        result = await engine.authorize(Authorize(client_id=..., ...))
        if result.is_challenge:
            # send the user to login, then call authorize again with
            # request_id=result.request_id and the new session_id
            ...
    """

    def __init__(
        self,
        settings: GomsleSettings,
        accounts: AccountRegistry,
        applications: ApplicationRegistry,
        credentials: CredentialStorePort,
        requests: AuthorizationRequestStorePort,
        grants: GrantStorePort,
        sessions: LoginSessionStorePort,
        signer: TokenSignerPort,
    ):
        self.settings = settings
        self.accounts = accounts
        self.applications = applications
        self.credentials = credentials
        self.requests = requests
        self.grants = grants
        self.sessions = sessions
        self.signer = signer

    # ═══════════════════════════════════════════════════════════════
    # AUTHORIZE
    # ═══════════════════════════════════════════════════════════════

    async def authorize(self, command: Authorize) -> AuthorizeResult:
        events: list[Any] = []
        try:
            request, application = await self._resolve_request(command)
        except ProtocolError as e:
            logger.warning(f"Authorization request rejected: {e.code}")
            return AuthorizeResult.denied(e)

        session = await self.sessions.get(command.session_id) if command.session_id else None
        if session is None or not session.is_authenticated:
            modification = request.challenge()
            events.extend(modification.events)
            await self.requests.save(request)
            logger.info(f"Authorization request {request.id} awaits login")
            return AuthorizeResult.challenge(request.id, events=events)

        subject_id = session.subject_id
        try:
            events.extend(await self._apply_issuance_policy(application, subject_id))
        except ProtocolError as e:
            await self.requests.delete(request.id)
            logger.warning(
                f"Authorization request {request.id} denied for user {subject_id}"
            )
            return AuthorizeResult.denied(e)

        grant, modification = request.grant(
            subject_id, code_lifetime_seconds=self.settings.authorization_code_lifetime
        )
        events.extend(modification.events)
        await self.grants.add_code(grant)
        await self.requests.save(request)

        principal = await self._principal(subject_id)
        id_token = None
        response_types = request.response_type.split()
        if "id_token" in response_types:
            id_token = self._sign_id_token(
                subject_id=subject_id,
                client_id=request.client_id,
                nonce=request.nonce,
                email=principal.email,
            )

        redirect_url = append_params(
            request.redirect_uri,
            {"code": grant.code, "id_token": id_token, "state": request.state},
            fragment=len(response_types) > 1,
        )
        logger.info(f"Issued authorization code for request {request.id}")
        return AuthorizeResult.success(
            principal=principal,
            code=grant.code,
            redirect_url=redirect_url,
            request_id=request.id,
            state=request.state,
            id_token=id_token,
            events=events,
        )

    async def _resolve_request(
        self, command: Authorize
    ) -> tuple[AuthorizationRequest, Application]:
        if command.request_id:
            return await self._resume_request(command)

        application = await self.applications.get_application(command.client_id)
        if application is None:
            raise ProtocolError(
                ProtocolErrorCodes.INVALID_CLIENT, "The client_id is unknown."
            )

        if not command.redirect_uri or command.redirect_uri not in application.redirect_uris:
            raise ProtocolError(
                ProtocolErrorCodes.INVALID_REQUEST,
                "The redirect_uri is not registered for this client.",
            )

        response_type = await self._check_response_type(
            application, command.response_type
        )
        if "id_token" in response_type.split() and not command.nonce:
            raise ProtocolError(
                ProtocolErrorCodes.INVALID_REQUEST,
                "A nonce is required when an id_token is requested.",
            )

        scopes = await self._check_scopes(application, command.scope)
        if "id_token" in response_type.split() and "openid" not in scopes:
            raise ProtocolError(
                ProtocolErrorCodes.INVALID_SCOPE,
                "The openid scope is required when an id_token is requested.",
            )
        modification = AuthorizationRequest.create(
            client_id=application.id,
            redirect_uri=command.redirect_uri,
            response_type=response_type,
            scopes=scopes,
            state=command.state,
            nonce=command.nonce,
            expires_in_seconds=self.settings.authorization_request_lifetime,
        )
        return modification.request, application

    async def _resume_request(
        self, command: Authorize
    ) -> tuple[AuthorizationRequest, Application]:
        request = await self.requests.get(command.request_id)
        if request is None or not request.is_pending:
            raise ProtocolError(
                ProtocolErrorCodes.INVALID_REQUEST,
                "The authorization request is unknown or no longer pending.",
            )
        if command.client_id and command.client_id != request.client_id:
            raise ProtocolError(
                ProtocolErrorCodes.INVALID_REQUEST,
                "The client_id does not match the authorization request.",
            )
        application = await self.applications.get_application(request.client_id)
        if application is None:
            raise ProtocolError(
                ProtocolErrorCodes.INVALID_CLIENT, "The client_id is unknown."
            )
        return request, application

    async def _check_response_type(
        self, application: Application, response_type: Optional[str]
    ) -> str:
        if not response_type:
            raise ProtocolError(
                ProtocolErrorCodes.INVALID_REQUEST, "The response_type is required."
            )
        normalized = normalize_response_type(response_type)
        parts = normalized.split()
        # Implicit access tokens are never issued from the authorization endpoint
        if (
            not is_allowed_response_type(normalized)
            or "code" not in parts
            or "token" in parts
        ):
            raise ProtocolError(
                ProtocolErrorCodes.UNSUPPORTED_RESPONSE_TYPE,
                f"The response_type '{response_type}' is not supported.",
            )
        providers = await self.applications.list_providers(application.id)
        if not any(p.response_type == normalized for p in providers):
            raise ProtocolError(
                ProtocolErrorCodes.UNSUPPORTED_RESPONSE_TYPE,
                f"No provider of this client offers response_type '{response_type}'.",
            )
        return normalized

    async def _check_scopes(
        self, application: Application, scope: Optional[str]
    ) -> tuple[str, ...]:
        scopes = parse_scope_string(scope)
        allowed = set(STANDARD_SCOPES)
        for provider in await self.applications.list_providers(application.id):
            allowed.update(provider.scopes)
        unknown = [s for s in scopes if s not in allowed]
        if unknown:
            raise ProtocolError(
                ProtocolErrorCodes.INVALID_SCOPE,
                f"The scope '{unknown[0]}' is not allowed for this client.",
            )
        return scopes

    async def _apply_issuance_policy(
        self, application: Application, subject_id: str
    ) -> list[Any]:
        """
        Members of the owning account may obtain codes. Others only when the
        application provisions automatically, which adds them as Member.
        """
        if await self.accounts.authorize(
            application.account_id, subject_id, AccountRole.MEMBER
        ):
            return []
        if application.provisions_automatically:
            modification = await self.accounts.add_member(
                application.account_id, subject_id, AccountRole.MEMBER
            )
            return list(modification.events)
        raise ProtocolError(
            ProtocolErrorCodes.ACCESS_DENIED,
            "The user is not allowed to sign in to this client.",
        )

    # ═══════════════════════════════════════════════════════════════
    # EXCHANGE
    # ═══════════════════════════════════════════════════════════════

    async def exchange(self, command: Exchange) -> ExchangeResult:
        if command.grant_type == GRANT_TYPE_AUTHORIZATION_CODE:
            result = await self._exchange_code(command)
        elif command.grant_type == GRANT_TYPE_REFRESH_TOKEN:
            result = await self._exchange_refresh_token(command)
        else:
            result = ExchangeResult.denied(
                ProtocolError(
                    ProtocolErrorCodes.UNSUPPORTED_GRANT_TYPE,
                    f"The grant_type '{command.grant_type}' is not supported.",
                )
            )
        if result.is_denied:
            logger.warning(
                f"Token request denied: {next(iter(result.errors))} "
                f"(grant_type={command.grant_type})"
            )
        return result

    async def _exchange_code(self, command: Exchange) -> ExchangeResult:
        # Redemption consumes the code even when the remaining checks
        # fail; a code presented by the wrong client is burned.
        grant = await self.grants.redeem_code(command.code) if command.code else None
        if grant is None or not grant.is_redeemable_by(
            command.client_id, command.redirect_uri
        ):
            return ExchangeResult.denied(_invalid_grant())
        if await self.applications.get_application(grant.client_id) is None:
            return ExchangeResult.denied(_invalid_grant())

        events = await self._mark_exchanged(grant.request_id, GRANT_TYPE_AUTHORIZATION_CODE)
        tokens = await self._issue_tokens(
            request_id=grant.request_id,
            client_id=grant.client_id,
            subject_id=grant.subject_id,
            scopes=grant.scopes,
            nonce=grant.nonce,
        )
        logger.info(f"Exchanged authorization code for request {grant.request_id}")
        return ExchangeResult.success(
            tokens, await self._principal(grant.subject_id), events=events
        )

    async def _exchange_refresh_token(self, command: Exchange) -> ExchangeResult:
        grant = (
            await self.grants.redeem_refresh_token(command.refresh_token)
            if command.refresh_token
            else None
        )
        if grant is None or not grant.is_redeemable_by(command.client_id):
            return ExchangeResult.denied(_invalid_grant())
        if await self.applications.get_application(grant.client_id) is None:
            return ExchangeResult.denied(_invalid_grant())

        events = await self._mark_exchanged(grant.request_id, GRANT_TYPE_REFRESH_TOKEN)
        tokens = await self._issue_tokens(
            request_id=grant.request_id,
            client_id=grant.client_id,
            subject_id=grant.subject_id,
            scopes=grant.scopes,
        )
        logger.info(f"Rotated refresh token for request {grant.request_id}")
        return ExchangeResult.success(
            tokens, await self._principal(grant.subject_id), events=events
        )

    async def _mark_exchanged(self, request_id: str, grant_type: str) -> list[Any]:
        request = await self.requests.get(request_id)
        if request is None:
            logger.debug(f"Authorization request {request_id} no longer stored")
            return []
        modification = request.exchanged(grant_type)
        await self.requests.save(request)
        return list(modification.events)

    async def _issue_tokens(
        self,
        request_id: str,
        client_id: str,
        subject_id: str,
        scopes: tuple[str, ...],
        nonce: Optional[str] = None,
    ) -> TokenSet:
        now = int(datetime.now(timezone.utc).timestamp())
        scope = " ".join(scopes)
        access_token = self.signer.sign(
            {
                "sub": subject_id,
                "aud": client_id,
                "client_id": client_id,
                "scope": scope,
                "iat": now,
                "exp": now + self.settings.access_token_lifetime,
                "jti": str(uuid.uuid4()),
            }
        )

        id_token = None
        if "openid" in scopes:
            principal = await self._principal(subject_id)
            id_token = self._sign_id_token(
                subject_id=subject_id,
                client_id=client_id,
                nonce=nonce,
                email=principal.email,
                issued_at=now,
            )

        refresh_token = None
        if "offline_access" in scopes:
            refresh = RefreshGrant.create(
                request_id=request_id,
                client_id=client_id,
                subject_id=subject_id,
                scopes=scopes,
                lifetime_seconds=self.settings.refresh_token_lifetime,
            )
            await self.grants.add_refresh_token(refresh)
            refresh_token = refresh.token

        return TokenSet(
            access_token=access_token,
            expires_in=self.settings.access_token_lifetime,
            scope=scope,
            id_token=id_token,
            refresh_token=refresh_token,
        )

    def _sign_id_token(
        self,
        subject_id: str,
        client_id: str,
        nonce: Optional[str],
        email: Optional[str],
        issued_at: Optional[int] = None,
    ) -> str:
        now = issued_at or int(datetime.now(timezone.utc).timestamp())
        claims: dict[str, Any] = {
            "sub": subject_id,
            "aud": client_id,
            "iat": now,
            "exp": now + self.settings.id_token_lifetime,
        }
        if nonce:
            claims["nonce"] = nonce
        if email:
            claims["email"] = email
        return self.signer.sign(claims)

    async def _principal(self, subject_id: str) -> Principal:
        user = await self.credentials.find_user_by_id(subject_id)
        return Principal(user_id=subject_id, email=user.email if user else None)

    # ═══════════════════════════════════════════════════════════════
    # LOGOUT
    # ═══════════════════════════════════════════════════════════════

    async def logout(self, command: Logout) -> LogoutResult:
        """End the login session. Succeeds whether or not one existed."""
        events: list[Any] = []
        if command.session_id:
            session = await self.sessions.get(command.session_id)
            if session is not None:
                events.extend(session.sign_out())
                logger.info(f"Signed out user {session.subject_id}")
            await self.sessions.delete(command.session_id)
        redirect_url = await self._post_logout_redirect(
            command.client_id, command.post_logout_redirect_uri
        )
        return LogoutResult(success=True, redirect_url=redirect_url, events=events)

    async def _post_logout_redirect(
        self, client_id: Optional[str], uri: Optional[str]
    ) -> Optional[str]:
        """
        Relative paths are honoured as is. Absolute URIs must be registered
        on the named client; anything else is dropped.
        """
        if not uri:
            return None
        if _is_local_path(uri):
            return uri
        application = (
            await self.applications.get_application(client_id) if client_id else None
        )
        if application is not None and uri in application.redirect_uris:
            return uri
        logger.warning(
            f"Dropped unregistered post-logout redirect (client_id={client_id})"
        )
        return None
