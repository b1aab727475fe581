"""
Domain events for accounts, applications and the authorization flow.

Domain events represent facts that have happened in the domain.
They are immutable records of state changes.

Uses DomainEvent base class from py-cqrs-ddd-toolkit.
"""

from dataclasses import dataclass
from typing import Dict, Any

from cqrs_ddd.ddd import DomainEvent


# ═══════════════════════════════════════════════════════════════
# ACCOUNT EVENTS
# ═══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AccountCreated(DomainEvent):
    """Raised when a new account is created; the creator is its owner."""
    account_id: str
    name: str
    owner_id: str

    @property
    def aggregate_type(self) -> str:
        return "Account"

    @property
    def aggregate_id(self) -> str:
        return self.account_id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccountCreated":
        return cls(
            account_id=data["account_id"],
            name=data["name"],
            owner_id=data["owner_id"],
        )


@dataclass(frozen=True)
class UserInvited(DomainEvent):
    """Raised when an invitation to join an account is issued."""
    account_id: str
    invitation_id: str
    email: str
    role: str

    @property
    def aggregate_type(self) -> str:
        return "Account"

    @property
    def aggregate_id(self) -> str:
        return self.account_id


@dataclass(frozen=True)
class MemberAdded(DomainEvent):
    """Raised when a user joins an account (invitation or auto-provision)."""
    account_id: str
    member_id: str
    role: str
    via: str = "invitation"

    @property
    def aggregate_type(self) -> str:
        return "Account"

    @property
    def aggregate_id(self) -> str:
        return self.account_id


# ═══════════════════════════════════════════════════════════════
# APPLICATION EVENTS
# ═══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ApplicationCreated(DomainEvent):
    """Raised when an application is registered under an account."""
    application_id: str
    account_id: str
    display_name: str

    @property
    def aggregate_type(self) -> str:
        return "Application"

    @property
    def aggregate_id(self) -> str:
        return self.application_id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApplicationCreated":
        return cls(
            application_id=data["application_id"],
            account_id=data["account_id"],
            display_name=data.get("display_name", ""),
        )


@dataclass(frozen=True)
class OidcProviderCreated(DomainEvent):
    """Raised when an OIDC provider is configured for an application."""
    provider_id: str
    application_id: str
    name: str
    is_default: bool = False

    @property
    def aggregate_type(self) -> str:
        return "OidcProvider"

    @property
    def aggregate_id(self) -> str:
        return self.provider_id


@dataclass(frozen=True)
class OidcProviderEdited(DomainEvent):
    """Raised when an OIDC provider configuration is replaced."""
    provider_id: str
    application_id: str
    is_default: bool = False

    @property
    def aggregate_type(self) -> str:
        return "OidcProvider"

    @property
    def aggregate_id(self) -> str:
        return self.provider_id


@dataclass(frozen=True)
class DefaultProviderDemoted(DomainEvent):
    """Raised when a provider loses the default flag to another one."""
    provider_id: str
    application_id: str
    replaced_by: str

    @property
    def aggregate_type(self) -> str:
        return "OidcProvider"

    @property
    def aggregate_id(self) -> str:
        return self.provider_id


# ═══════════════════════════════════════════════════════════════
# CREDENTIAL EVENTS
# ═══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class UserRegistered(DomainEvent):
    """Raised when a user registers with email and password."""
    subject_id: str
    email: str

    @property
    def aggregate_type(self) -> str:
        return "User"

    @property
    def aggregate_id(self) -> str:
        return self.subject_id


@dataclass(frozen=True)
class EmailConfirmed(DomainEvent):
    """Raised when a user redeems an email confirmation token."""
    subject_id: str

    @property
    def aggregate_type(self) -> str:
        return "User"

    @property
    def aggregate_id(self) -> str:
        return self.subject_id


@dataclass(frozen=True)
class PasswordReset(DomainEvent):
    """Raised when a user resets the password with a reset token."""
    subject_id: str

    @property
    def aggregate_type(self) -> str:
        return "User"

    @property
    def aggregate_id(self) -> str:
        return self.subject_id


@dataclass(frozen=True)
class UserSignedIn(DomainEvent):
    """Raised when a login session becomes authenticated."""
    session_id: str
    subject_id: str
    two_factor_pending: bool = False

    @property
    def aggregate_type(self) -> str:
        return "LoginSession"

    @property
    def aggregate_id(self) -> str:
        return self.session_id


@dataclass(frozen=True)
class UserSignedOut(DomainEvent):
    """Raised when a login session is terminated."""
    session_id: str

    @property
    def aggregate_type(self) -> str:
        return "LoginSession"

    @property
    def aggregate_id(self) -> str:
        return self.session_id


# ═══════════════════════════════════════════════════════════════
# AUTHORIZATION PROTOCOL EVENTS
# ═══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AuthorizationChallenged(DomainEvent):
    """Raised when an authorization request waits for interactive login."""
    request_id: str
    client_id: str

    @property
    def aggregate_type(self) -> str:
        return "AuthorizationRequest"

    @property
    def aggregate_id(self) -> str:
        return self.request_id


@dataclass(frozen=True)
class AuthorizationGranted(DomainEvent):
    """Raised when an authorization code is issued."""
    request_id: str
    client_id: str
    subject_id: str
    scopes: tuple[str, ...] = ()

    @property
    def aggregate_type(self) -> str:
        return "AuthorizationRequest"

    @property
    def aggregate_id(self) -> str:
        return self.request_id


@dataclass(frozen=True)
class TokensIssued(DomainEvent):
    """Raised when a grant is exchanged for a token set."""
    request_id: str
    client_id: str
    subject_id: str
    grant_type: str

    @property
    def aggregate_type(self) -> str:
        return "AuthorizationRequest"

    @property
    def aggregate_id(self) -> str:
        return self.request_id
