"""
Authorization-code flow state.

One ``AuthorizationRequest`` aggregate exists per in-flight authorization
request. It moves through:

    UNAUTHENTICATED → CHALLENGE_PENDING → AUTHENTICATED → EXCHANGED

Issued codes and refresh tokens are separate single-use grant entities;
``LoginSession`` tracks the interactive sign-in the engine consults.
"""

import hmac
import secrets
import uuid
from datetime import datetime, timezone, timedelta
from enum import Enum
from typing import Optional, List

from cqrs_ddd.ddd import AggregateRoot, Modification, Entity

from gomsle.domain.errors import GomsleDomainError
from gomsle.domain.events import (
    AuthorizationChallenged,
    AuthorizationGranted,
    TokensIssued,
    UserSignedIn,
    UserSignedOut,
)


class AuthorizationState(str, Enum):
    """State of an authorization request."""

    UNAUTHENTICATED = "unauthenticated"
    CHALLENGE_PENDING = "challenge_pending"
    AUTHENTICATED = "authenticated"
    EXCHANGED = "exchanged"


class AuthorizationRequestModification(Modification):
    def __init__(self, request: "AuthorizationRequest", events: List):
        super().__init__(entity=request, events=events)
        self.request = request


class AuthorizationRequest(AggregateRoot):
    """
    Aggregate root for one authorization request.

    Stores the validated protocol parameters so that a request can be
    resumed after interactive login.
    """

    def __init__(
        self,
        entity_id: str = None,
        client_id: str = "",
        redirect_uri: str = "",
        response_type: str = "code",
        scopes: tuple[str, ...] = (),
        state: Optional[str] = None,
        nonce: Optional[str] = None,
        status: AuthorizationState = AuthorizationState.UNAUTHENTICATED,
        subject_id: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        **kwargs,
    ):
        super().__init__(entity_id=entity_id, **kwargs)
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self.response_type = response_type
        self.scopes = tuple(scopes)
        self.state = state
        self.nonce = nonce
        self.status = status
        self.subject_id = subject_id
        self.expires_at = expires_at

    @classmethod
    def create(
        cls,
        client_id: str,
        redirect_uri: str,
        response_type: str,
        scopes: tuple[str, ...],
        state: Optional[str] = None,
        nonce: Optional[str] = None,
        expires_in_seconds: int = 1800,
    ) -> AuthorizationRequestModification:
        request = cls(
            entity_id=str(uuid.uuid4()),
            client_id=client_id,
            redirect_uri=redirect_uri,
            response_type=response_type,
            scopes=scopes,
            state=state,
            nonce=nonce,
            expires_at=datetime.now(timezone.utc)
            + timedelta(seconds=expires_in_seconds),
        )
        return AuthorizationRequestModification(request, [])

    def challenge(self) -> AuthorizationRequestModification:
        """Interactive login is required before a code can be issued."""
        self._check_can_transition(
            AuthorizationState.UNAUTHENTICATED, AuthorizationState.CHALLENGE_PENDING
        )
        self.status = AuthorizationState.CHALLENGE_PENDING
        event = AuthorizationChallenged(request_id=self.id, client_id=self.client_id)
        self.add_domain_event(event)
        self.increment_version()
        return AuthorizationRequestModification(self, [event])

    def grant(
        self, subject_id: str, code_lifetime_seconds: int = 300
    ) -> tuple["AuthorizationGrant", AuthorizationRequestModification]:
        """Bind the request to ``subject_id`` and issue a single-use code."""
        self._check_can_transition(
            AuthorizationState.UNAUTHENTICATED, AuthorizationState.CHALLENGE_PENDING
        )
        self.status = AuthorizationState.AUTHENTICATED
        self.subject_id = subject_id

        grant = AuthorizationGrant.create(
            request_id=self.id,
            client_id=self.client_id,
            redirect_uri=self.redirect_uri,
            subject_id=subject_id,
            scopes=self.scopes,
            nonce=self.nonce,
            lifetime_seconds=code_lifetime_seconds,
        )
        event = AuthorizationGranted(
            request_id=self.id,
            client_id=self.client_id,
            subject_id=subject_id,
            scopes=self.scopes,
        )
        self.add_domain_event(event)
        self.increment_version()
        return grant, AuthorizationRequestModification(self, [event])

    def exchanged(self, grant_type: str) -> AuthorizationRequestModification:
        """
        Record a successful token exchange.

        Refresh-token exchanges happen after the first exchange, so
        ``EXCHANGED`` is also accepted as a source state.
        """
        self._check_can_transition(
            AuthorizationState.AUTHENTICATED, AuthorizationState.EXCHANGED
        )
        self.status = AuthorizationState.EXCHANGED
        event = TokensIssued(
            request_id=self.id,
            client_id=self.client_id,
            subject_id=self.subject_id or "",
            grant_type=grant_type,
        )
        self.add_domain_event(event)
        self.increment_version()
        return AuthorizationRequestModification(self, [event])

    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc) > self.expires_at

    @property
    def is_pending(self) -> bool:
        return self.status in (
            AuthorizationState.UNAUTHENTICATED,
            AuthorizationState.CHALLENGE_PENDING,
        )

    def _check_can_transition(self, *expected: AuthorizationState) -> None:
        if self.status not in expected:
            raise GomsleDomainError(
                f"Invalid state transition: expected one of "
                f"{[s.value for s in expected]}, got {self.status.value}",
                code="INVALID_TRANSITION",
            )


# ═══════════════════════════════════════════════════════════════
# GRANTS
# ═══════════════════════════════════════════════════════════════


def _constant_time_equals(left: Optional[str], right: Optional[str]) -> bool:
    return hmac.compare_digest((left or "").encode(), (right or "").encode())


class AuthorizationGrant(Entity):
    """A single-use authorization code."""

    def __init__(
        self,
        entity_id: str = None,
        code: str = "",
        request_id: str = "",
        client_id: str = "",
        redirect_uri: str = "",
        subject_id: str = "",
        scopes: tuple[str, ...] = (),
        nonce: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        **kwargs,
    ):
        super().__init__(entity_id=entity_id, **kwargs)
        self.code = code
        self.request_id = request_id
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self.subject_id = subject_id
        self.scopes = tuple(scopes)
        self.nonce = nonce
        self.expires_at = expires_at

    @classmethod
    def create(
        cls,
        request_id: str,
        client_id: str,
        redirect_uri: str,
        subject_id: str,
        scopes: tuple[str, ...],
        nonce: Optional[str] = None,
        lifetime_seconds: int = 300,
    ) -> "AuthorizationGrant":
        return cls(
            entity_id=str(uuid.uuid4()),
            code=secrets.token_urlsafe(32),
            request_id=request_id,
            client_id=client_id,
            redirect_uri=redirect_uri,
            subject_id=subject_id,
            scopes=scopes,
            nonce=nonce,
            expires_at=datetime.now(timezone.utc)
            + timedelta(seconds=lifetime_seconds),
        )

    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc) > self.expires_at

    def is_redeemable_by(self, client_id: str, redirect_uri: str) -> bool:
        # Both comparisons always run so the outcome does not reveal
        # which element mismatched.
        client_ok = _constant_time_equals(self.client_id, client_id)
        redirect_ok = _constant_time_equals(self.redirect_uri, redirect_uri)
        return client_ok and redirect_ok and not self.is_expired()


class RefreshGrant(Entity):
    """A single-use (rotating) refresh token."""

    def __init__(
        self,
        entity_id: str = None,
        token: str = "",
        request_id: str = "",
        client_id: str = "",
        subject_id: str = "",
        scopes: tuple[str, ...] = (),
        expires_at: Optional[datetime] = None,
        **kwargs,
    ):
        super().__init__(entity_id=entity_id, **kwargs)
        self.token = token
        self.request_id = request_id
        self.client_id = client_id
        self.subject_id = subject_id
        self.scopes = tuple(scopes)
        self.expires_at = expires_at

    @classmethod
    def create(
        cls,
        request_id: str,
        client_id: str,
        subject_id: str,
        scopes: tuple[str, ...],
        lifetime_seconds: int,
    ) -> "RefreshGrant":
        return cls(
            entity_id=str(uuid.uuid4()),
            token=secrets.token_urlsafe(48),
            request_id=request_id,
            client_id=client_id,
            subject_id=subject_id,
            scopes=scopes,
            expires_at=datetime.now(timezone.utc)
            + timedelta(seconds=lifetime_seconds),
        )

    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc) > self.expires_at

    def is_redeemable_by(self, client_id: str) -> bool:
        return _constant_time_equals(self.client_id, client_id) and not self.is_expired()


# ═══════════════════════════════════════════════════════════════
# LOGIN SESSION
# ═══════════════════════════════════════════════════════════════


class LoginSessionStatus(str, Enum):
    AUTHENTICATED = "authenticated"
    TWO_FACTOR_PENDING = "two_factor_pending"


class LoginSession(AggregateRoot):
    """
    Interactive sign-in state, keyed by the boundary's session id.

    A session waiting for a second factor is not authenticated.
    """

    def __init__(
        self,
        entity_id: str = None,
        subject_id: str = "",
        status: LoginSessionStatus = LoginSessionStatus.AUTHENTICATED,
        **kwargs,
    ):
        super().__init__(entity_id=entity_id, **kwargs)
        self.subject_id = subject_id
        self.status = status

    @classmethod
    def sign_in(
        cls, session_id: str, subject_id: str, two_factor_pending: bool = False
    ) -> tuple["LoginSession", list]:
        session = cls(
            entity_id=session_id,
            subject_id=subject_id,
            status=(
                LoginSessionStatus.TWO_FACTOR_PENDING
                if two_factor_pending
                else LoginSessionStatus.AUTHENTICATED
            ),
        )
        event = UserSignedIn(
            session_id=session_id,
            subject_id=subject_id,
            two_factor_pending=two_factor_pending,
        )
        session.add_domain_event(event)
        return session, [event]

    @property
    def is_authenticated(self) -> bool:
        return self.status == LoginSessionStatus.AUTHENTICATED

    @property
    def is_two_factor_pending(self) -> bool:
        return self.status == LoginSessionStatus.TWO_FACTOR_PENDING

    def sign_out(self) -> list:
        event = UserSignedOut(session_id=self.id)
        self.add_domain_event(event)
        return [event]


__all__ = [
    "AuthorizationState",
    "AuthorizationRequest",
    "AuthorizationRequestModification",
    "AuthorizationGrant",
    "RefreshGrant",
    "LoginSession",
    "LoginSessionStatus",
]
