"""
Command and protocol result types.

Commands return ``CommandResult`` ({is_valid, result | errors}); the
protocol engine returns discriminated results that never carry an
exception, only an error-code → message map.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from gomsle.domain.errors import ProtocolError
from gomsle.domain.value_objects import ValidationFailure
from gomsle.identity import Principal

T = TypeVar("T")


# ═══════════════════════════════════════════════════════════════
# COMMAND RESULTS
# ═══════════════════════════════════════════════════════════════


@dataclass
class CommandResult(Generic[T]):
    """
    Outcome of a mutating command.

    Use factory methods to create instances.
    """

    is_valid: bool
    result: Optional[T] = None
    errors: list[ValidationFailure] = field(default_factory=list)

    @classmethod
    def valid(cls, result: Optional[T] = None) -> "CommandResult[T]":
        return cls(is_valid=True, result=result)

    @classmethod
    def invalid(cls, errors: list[ValidationFailure]) -> "CommandResult[T]":
        return cls(is_valid=False, errors=list(errors))

    @classmethod
    def failure(cls, field: str, code: str, message: str = "") -> "CommandResult[T]":
        return cls.invalid([ValidationFailure(field=field, code=code, message=message)])

    def has_error(self, field: str, code: str) -> bool:
        return any(e.field == field and e.code == code for e in self.errors)


@dataclass
class SignInResult:
    """Result of a password sign-in."""

    succeeded: bool
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    requires_two_factor: bool = False


@dataclass
class TwoFactorProvidersResult:
    providers: list[str] = field(default_factory=list)


# ═══════════════════════════════════════════════════════════════
# PROTOCOL RESULTS
# ═══════════════════════════════════════════════════════════════


class ProtocolStatus(str, Enum):
    """Discriminator of protocol engine results."""

    SUCCESS = "success"
    CHALLENGE = "challenge"
    DENIED = "denied"


@dataclass
class TokenSet:
    """Tokens issued by a successful exchange."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 3600
    scope: str = ""
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """OAuth2 token response body (RFC 6749 section 5.1)."""
        data: dict[str, Any] = {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
            "scope": self.scope,
        }
        if self.id_token:
            data["id_token"] = self.id_token
        if self.refresh_token:
            data["refresh_token"] = self.refresh_token
        return data


@dataclass
class AuthorizeResult:
    """
    Result of an authorization request.

    - ``success``: ``principal``, the single-use ``code`` and the client
      ``redirect_url`` carrying it.
    - ``challenge``: interactive login is required; ``request_id`` resumes
      the stored request afterwards.
    - ``denied``: ``errors`` maps the OAuth2 error code to a description.
    """

    status: ProtocolStatus
    principal: Optional[Principal] = None
    code: Optional[str] = None
    id_token: Optional[str] = None
    redirect_url: Optional[str] = None
    request_id: Optional[str] = None
    state: Optional[str] = None
    errors: dict[str, str] = field(default_factory=dict)
    events: list = field(default_factory=list, repr=False)

    @classmethod
    def success(
        cls,
        principal: Principal,
        code: str,
        redirect_url: str,
        request_id: str,
        state: Optional[str] = None,
        id_token: Optional[str] = None,
        events: Optional[list] = None,
    ) -> "AuthorizeResult":
        return cls(
            status=ProtocolStatus.SUCCESS,
            principal=principal,
            code=code,
            id_token=id_token,
            redirect_url=redirect_url,
            request_id=request_id,
            state=state,
            events=events or [],
        )

    @classmethod
    def challenge(
        cls, request_id: str, events: Optional[list] = None
    ) -> "AuthorizeResult":
        return cls(
            status=ProtocolStatus.CHALLENGE, request_id=request_id, events=events or []
        )

    @classmethod
    def denied(cls, error: ProtocolError) -> "AuthorizeResult":
        return cls(status=ProtocolStatus.DENIED, errors=error.to_dict())

    @property
    def is_success(self) -> bool:
        return self.status == ProtocolStatus.SUCCESS

    @property
    def is_challenge(self) -> bool:
        return self.status == ProtocolStatus.CHALLENGE

    @property
    def is_denied(self) -> bool:
        return self.status == ProtocolStatus.DENIED


@dataclass
class ExchangeResult:
    """Result of a token request: a ``TokenSet`` or a denial."""

    status: ProtocolStatus
    tokens: Optional[TokenSet] = None
    principal: Optional[Principal] = None
    errors: dict[str, str] = field(default_factory=dict)
    events: list = field(default_factory=list, repr=False)

    @classmethod
    def success(
        cls, tokens: TokenSet, principal: Principal, events: Optional[list] = None
    ) -> "ExchangeResult":
        return cls(
            status=ProtocolStatus.SUCCESS,
            tokens=tokens,
            principal=principal,
            events=events or [],
        )

    @classmethod
    def denied(cls, error: ProtocolError) -> "ExchangeResult":
        return cls(status=ProtocolStatus.DENIED, errors=error.to_dict())

    @property
    def is_success(self) -> bool:
        return self.status == ProtocolStatus.SUCCESS

    @property
    def is_denied(self) -> bool:
        return self.status == ProtocolStatus.DENIED


@dataclass
class LogoutResult:
    """Logout always succeeds."""

    success: bool = True
    redirect_url: Optional[str] = None
    events: list = field(default_factory=list, repr=False)
