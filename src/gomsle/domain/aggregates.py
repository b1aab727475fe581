"""
Domain aggregates for tenants and their applications.

Aggregates are clusters of domain objects that can be treated as a single unit.
The root entity (the aggregate root) ensures the consistency of changes.
Aggregates reference each other only by identifier; registries resolve them.

Uses AggregateRoot base class from py-cqrs-ddd-toolkit.
"""

import secrets
import uuid
from datetime import datetime, timezone, timedelta
from typing import Optional, List, Any

from cqrs_ddd.ddd import AggregateRoot, Modification, Entity

from gomsle.domain.errors import (
    GomsleDomainError,
    InvitationError,
    OnlyOneOwnerError,
    ErrorCodes,
)
from gomsle.domain.events import (
    AccountCreated,
    UserInvited,
    MemberAdded,
    ApplicationCreated,
    OidcProviderCreated,
    OidcProviderEdited,
    DefaultProviderDemoted,
)
from gomsle.domain.value_objects import (
    AccountRole,
    AccountUser,
    OidcProviderSettings,
    normalize_response_type,
    normalize_scopes,
)


# ═══════════════════════════════════════════════════════════════
# MODIFICATIONS
# ═══════════════════════════════════════════════════════════════


class AccountModification(Modification):
    """Modification for creating or updating an account."""

    def __init__(self, account: "Account", events: List):
        super().__init__(entity=account, events=events)
        self.account = account


class InvitationModification(Modification):
    """Modification carrying a newly issued invitation."""

    def __init__(self, invitation: "Invitation", events: List):
        super().__init__(entity=invitation, events=events)
        self.invitation = invitation


class ApplicationModification(Modification):
    """Modification for creating an application."""

    def __init__(self, application: "Application", events: List):
        super().__init__(entity=application, events=events)
        self.application = application


class OidcProviderModification(Modification):
    """Modification for creating or replacing an OIDC provider config."""

    def __init__(self, provider: "OidcProviderConfig", events: List):
        super().__init__(entity=provider, events=events)
        self.provider = provider


# ═══════════════════════════════════════════════════════════════
# ACCOUNT AGGREGATE ROOT
# ═══════════════════════════════════════════════════════════════


class Account(AggregateRoot):
    """
    A tenant organization.

    Owns its memberships. The membership map always contains exactly
    one Owner; the Owner role is set at creation and is never granted
    through invitations or provisioning.

    Usage:
        modification = Account.create(name="Microsoft", owner_id="user-1")
        account = modification.account

        account.has_role("user-1", AccountRole.ADMINISTRATOR)  # True
    """

    def __init__(
        self,
        entity_id: str = None,
        name: str = "",
        members: Optional[dict[str, AccountRole]] = None,
        **kwargs,
    ):
        super().__init__(entity_id=entity_id, **kwargs)
        self.name = name
        self.members: dict[str, AccountRole] = dict(members or {})

    @classmethod
    def create(cls, name: str, owner_id: str) -> AccountModification:
        """
        Factory method to create a new account owned by ``owner_id``.

        Args:
            name: Unique account name
            owner_id: User that becomes the sole Owner

        Returns:
            AccountModification with account and events
        """
        account = cls(
            entity_id=str(uuid.uuid4()),
            name=name,
            members={owner_id: AccountRole.OWNER},
        )
        event = AccountCreated(account_id=account.id, name=name, owner_id=owner_id)
        account.add_domain_event(event)
        return AccountModification(account, [event])

    @property
    def normalized_name(self) -> str:
        return normalize_name(self.name)

    @property
    def owner_id(self) -> str:
        return next(
            user_id
            for user_id, role in self.members.items()
            if role == AccountRole.OWNER
        )

    def role_of(self, user_id: str) -> Optional[AccountRole]:
        return self.members.get(user_id)

    def has_role(self, user_id: str, minimum: AccountRole) -> bool:
        role = self.role_of(user_id)
        return role is not None and role.satisfies(minimum)

    def invite(
        self,
        email: str,
        role: AccountRole,
        expires_in: timedelta,
    ) -> InvitationModification:
        """
        Issue an invitation for ``email`` to join with ``role``.

        Raises:
            OnlyOneOwnerError: If ``role`` is Owner
        """
        if role == AccountRole.OWNER:
            raise OnlyOneOwnerError()

        invitation = Invitation.create(
            account_id=self.id, email=email, role=role, expires_in=expires_in
        )
        event = UserInvited(
            account_id=self.id,
            invitation_id=invitation.id,
            email=email,
            role=role.value,
        )
        self.add_domain_event(event)
        return InvitationModification(invitation, [event])

    def add_member(
        self, user_id: str, role: AccountRole, via: str = "invitation"
    ) -> AccountModification:
        """
        Add ``user_id`` with ``role``.

        An existing member keeps the higher of the two roles; the Owner is
        never demoted and a second Owner is never created.
        """
        if role == AccountRole.OWNER:
            raise OnlyOneOwnerError()

        current = self.members.get(user_id)
        if current is not None and current.satisfies(role):
            return AccountModification(self, [])

        self.members[user_id] = role
        event = MemberAdded(
            account_id=self.id, member_id=user_id, role=role.value, via=via
        )
        self.add_domain_event(event)
        self.increment_version()
        return AccountModification(self, [event])

    def memberships(self) -> list[AccountUser]:
        return [
            AccountUser(account_id=self.id, user_id=user_id, role=role)
            for user_id, role in self.members.items()
        ]


def normalize_name(name: str) -> str:
    return name.strip().casefold()


# ═══════════════════════════════════════════════════════════════
# INVITATION
# ═══════════════════════════════════════════════════════════════


class Invitation(Entity):
    """
    Pending invitation of an email address into an account.

    Consumed (deleted) when accepted.
    """

    def __init__(
        self,
        entity_id: str = None,
        account_id: str = "",
        email: str = "",
        role: AccountRole = AccountRole.MEMBER,
        token: str = "",
        expires_at: datetime = None,
        **kwargs,
    ):
        super().__init__(entity_id=entity_id, **kwargs)
        self.account_id = account_id
        self.email = email
        self.role = role
        self.token = token
        self.expires_at = expires_at

    @classmethod
    def create(
        cls,
        account_id: str,
        email: str,
        role: AccountRole,
        expires_in: timedelta,
    ) -> "Invitation":
        return cls(
            entity_id=str(uuid.uuid4()),
            account_id=account_id,
            email=email,
            role=role,
            token=secrets.token_urlsafe(32),
            expires_at=datetime.now(timezone.utc) + expires_in,
        )

    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc) > self.expires_at

    def ensure_acceptable(self) -> None:
        if self.is_expired():
            raise InvitationError(
                "Invitation has expired", ErrorCodes.INVITATION_EXPIRED.value
            )


# ═══════════════════════════════════════════════════════════════
# APPLICATION AGGREGATE ROOT
# ═══════════════════════════════════════════════════════════════


class Application(AggregateRoot):
    """
    A tenant-owned relying party.

    Its id doubles as the OAuth2 ``client_id`` of the authorization
    endpoint. ``redirect_uris`` lists the URIs codes may be sent to.
    """

    def __init__(
        self,
        entity_id: str = None,
        account_id: str = "",
        display_name: str = "",
        auto_provision: bool = False,
        enable_provision: bool = False,
        redirect_uris: tuple[str, ...] = (),
        **kwargs,
    ):
        super().__init__(entity_id=entity_id, **kwargs)
        self.account_id = account_id
        self.display_name = display_name
        self.auto_provision = auto_provision
        self.enable_provision = enable_provision
        self.redirect_uris = tuple(redirect_uris)

    @classmethod
    def create(
        cls,
        account_id: str,
        display_name: str,
        auto_provision: bool,
        enable_provision: bool,
        redirect_uris: tuple[str, ...] = (),
    ) -> ApplicationModification:
        application = cls(
            entity_id=str(uuid.uuid4()),
            account_id=account_id,
            display_name=display_name,
            auto_provision=auto_provision,
            enable_provision=enable_provision,
            redirect_uris=redirect_uris,
        )
        event = ApplicationCreated(
            application_id=application.id,
            account_id=account_id,
            display_name=display_name,
        )
        application.add_domain_event(event)
        return ApplicationModification(application, [event])

    @property
    def provisions_automatically(self) -> bool:
        return self.enable_provision and self.auto_provision


# ═══════════════════════════════════════════════════════════════
# OIDC PROVIDER CONFIG
# ═══════════════════════════════════════════════════════════════


class OidcProviderConfig(AggregateRoot):
    """
    Configuration of an external OIDC identity provider trusted by
    an application.
    """

    def __init__(
        self,
        entity_id: str = None,
        application_id: str = "",
        name: str = "",
        authority_url: str = "",
        client_id: str = "",
        client_secret: str = "",
        response_type: str = "code",
        scopes: tuple[str, ...] = (),
        is_default: bool = False,
        is_visible: bool = True,
        **kwargs,
    ):
        super().__init__(entity_id=entity_id, **kwargs)
        self.application_id = application_id
        self.name = name
        self.authority_url = authority_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.response_type = response_type
        self.scopes = tuple(scopes)
        self.is_default = is_default
        self.is_visible = is_visible

    @classmethod
    def create(
        cls, application_id: str, settings: OidcProviderSettings
    ) -> OidcProviderModification:
        provider = cls(entity_id=str(uuid.uuid4()), application_id=application_id)
        provider._apply(settings)
        event = OidcProviderCreated(
            provider_id=provider.id,
            application_id=application_id,
            name=provider.name,
            is_default=provider.is_default,
        )
        provider.add_domain_event(event)
        return OidcProviderModification(provider, [event])

    def replace(self, settings: OidcProviderSettings) -> OidcProviderModification:
        """Full-record replacement; id and application are kept."""
        self._apply(settings)
        event = OidcProviderEdited(
            provider_id=self.id,
            application_id=self.application_id,
            is_default=self.is_default,
        )
        self.add_domain_event(event)
        self.increment_version()
        return OidcProviderModification(self, [event])

    def demote(self, replaced_by: str) -> OidcProviderModification:
        if not self.is_default:
            raise GomsleDomainError(
                "Only a default provider can be demoted", code="INVALID_STATE"
            )
        self.is_default = False
        event = DefaultProviderDemoted(
            provider_id=self.id,
            application_id=self.application_id,
            replaced_by=replaced_by,
        )
        self.add_domain_event(event)
        self.increment_version()
        return OidcProviderModification(self, [event])

    def settings(self) -> OidcProviderSettings:
        return OidcProviderSettings(
            name=self.name,
            authority_url=self.authority_url,
            client_id=self.client_id,
            client_secret=self.client_secret,
            response_type=self.response_type,
            scopes=self.scopes,
            is_default=self.is_default,
            is_visible=self.is_visible,
        )

    def _apply(self, settings: OidcProviderSettings) -> None:
        self.name = settings.name
        self.authority_url = settings.authority_url
        self.client_id = settings.client_id
        self.client_secret = settings.client_secret
        self.response_type = normalize_response_type(settings.response_type)
        self.scopes = normalize_scopes(settings.scopes)
        self.is_default = settings.is_default
        self.is_visible = settings.is_visible

    def to_dict(self) -> dict[str, Any]:
        """Serialize without the client secret."""
        return {
            "id": self.id,
            "application_id": self.application_id,
            "name": self.name,
            "authority_url": self.authority_url,
            "client_id": self.client_id,
            "response_type": self.response_type,
            "scopes": list(self.scopes),
            "is_default": self.is_default,
            "is_visible": self.is_visible,
        }


__all__ = [
    "Account",
    "AccountModification",
    "Invitation",
    "InvitationModification",
    "Application",
    "ApplicationModification",
    "OidcProviderConfig",
    "OidcProviderModification",
    "normalize_name",
]
