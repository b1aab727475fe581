"""
Account, role and application registries.

Registries own the multi-tenant rules: who may mutate an account, the
single-Owner invariant and the single-default-provider invariant. They
raise domain errors; handlers turn those into command results.

Mutating operations return the aggregate's Modification so callers get
the entity together with the events it produced.
"""

import logging
from datetime import timedelta
from typing import Optional

from gomsle.domain.aggregates import (
    Account,
    AccountModification,
    Invitation,
    InvitationModification,
    Application,
    ApplicationModification,
    OidcProviderConfig,
    OidcProviderModification,
)
from gomsle.domain.errors import (
    AuthorizationError,
    ErrorCodes,
    InvitationError,
)
from gomsle.domain.value_objects import (
    AccountRole,
    AccountUser,
    OidcProviderSettings,
)
from gomsle.infrastructure.ports.repositories import (
    AccountRepositoryPort,
    ApplicationRepositoryPort,
)

logger = logging.getLogger("gomsle.application.registries")


# ═══════════════════════════════════════════════════════════════
# ACCOUNT & ROLE REGISTRY
# ═══════════════════════════════════════════════════════════════


class AccountRegistry:
    """
    Accounts, memberships and invitations.

    Usage:
        registry = AccountRegistry(InMemoryAccountRepository())
        account = (await registry.create_account("Microsoft", "user-1")).account
        modification = await registry.invite_user(
            account.id, "test@gomsle.com", AccountRole.ADMINISTRATOR
        )
    """

    def __init__(
        self,
        accounts: AccountRepositoryPort,
        invitation_lifetime: timedelta = timedelta(days=7),
    ):
        self.accounts = accounts
        self.invitation_lifetime = invitation_lifetime

    async def get_account(self, account_id: str) -> Optional[Account]:
        if not account_id:
            return None
        return await self.accounts.get(account_id)

    async def find_account(self, name: str) -> Optional[Account]:
        if not name:
            return None
        return await self.accounts.get_by_name(name)

    async def find_invitation(self, token: str) -> Optional[Invitation]:
        if not token:
            return None
        return await self.accounts.get_invitation(token)

    async def create_account(
        self, name: str, creator_user_id: str
    ) -> AccountModification:
        """
        Create an account owned by ``creator_user_id``.

        Raises:
            DuplicateNameError: If an account with the same name exists
        """
        modification = Account.create(name=name.strip(), owner_id=creator_user_id)
        await self.accounts.add(modification.account)
        logger.info(f"Created account {modification.account.id}")
        return modification

    async def invite_user(
        self, account_id: str, email: str, role: AccountRole
    ) -> InvitationModification:
        """
        Issue an invitation into ``account_id``.

        Raises:
            OnlyOneOwnerError: If ``role`` is Owner
            AuthorizationError: If the account does not exist
        """
        account = await self._require_account(account_id, field="AccountName")
        modification = account.invite(
            email=email.strip(), role=role, expires_in=self.invitation_lifetime
        )
        await self.accounts.add_invitation(modification.invitation)
        logger.info(f"Invited user into account {account_id} as {role.value}")
        return modification

    async def revoke_invitation(self, invitation_id: str) -> None:
        await self.accounts.delete_invitation(invitation_id)
        logger.info(f"Revoked invitation {invitation_id}")

    async def accept_invitation(
        self, token: str, user_id: str, email: Optional[str] = None
    ) -> AccountModification:
        """
        Consume the invitation for ``token`` and add ``user_id`` to its account.

        When ``email`` is given it must match the invited address; a
        mismatch is reported as not found and leaves the invitation intact.

        Raises:
            InvitationError: InvitationNotFound or InvitationExpired
        """
        pending = await self.find_invitation(token)
        if pending is None:
            raise InvitationError()
        if email is not None and pending.email.casefold() != email.strip().casefold():
            raise InvitationError()

        invitation = await self.accounts.take_invitation(token)
        if invitation is None:
            raise InvitationError()
        invitation.ensure_acceptable()

        account = await self.accounts.get(invitation.account_id)
        if account is None:
            raise InvitationError()
        modification = account.add_member(user_id, invitation.role, via="invitation")
        await self.accounts.save(account)
        logger.info(f"User {user_id} joined account {account.id}")
        return modification

    async def authorize(
        self, account_id: str, user_id: str, min_role: AccountRole
    ) -> bool:
        """Whether ``user_id`` holds at least ``min_role`` on ``account_id``."""
        if not account_id or not user_id:
            return False
        account = await self.accounts.get(account_id)
        return account is not None and account.has_role(user_id, min_role)

    async def add_member(
        self,
        account_id: str,
        user_id: str,
        role: AccountRole = AccountRole.MEMBER,
        via: str = "provisioning",
    ) -> AccountModification:
        account = await self._require_account(account_id, field="AccountId")
        modification = account.add_member(user_id, role, via=via)
        if modification.events:
            await self.accounts.save(account)
            logger.info(f"Added user {user_id} to account {account_id} via {via}")
        return modification

    async def membership(self, account_id: str, user_id: str) -> Optional[AccountUser]:
        account = await self.get_account(account_id)
        if account is None or account.role_of(user_id) is None:
            return None
        return AccountUser(
            account_id=account.id, user_id=user_id, role=account.role_of(user_id)
        )

    async def _require_account(self, account_id: str, field: str) -> Account:
        account = await self.get_account(account_id)
        if account is None:
            raise AuthorizationError(
                "Account not found",
                field=field,
                code=ErrorCodes.ACCOUNT_NOT_FOUND.value,
            )
        return account


# ═══════════════════════════════════════════════════════════════
# APPLICATION & PROVIDER REGISTRY
# ═══════════════════════════════════════════════════════════════


class ApplicationRegistry:
    """
    Applications and their OIDC provider configurations.

    Every mutation resolves the owning account and requires the caller to
    be at least Administrator on it.
    """

    MIN_ROLE = AccountRole.ADMINISTRATOR

    def __init__(
        self,
        applications: ApplicationRepositoryPort,
        account_registry: AccountRegistry,
    ):
        self.applications = applications
        self.account_registry = account_registry

    async def get_application(self, application_id: str) -> Optional[Application]:
        if not application_id:
            return None
        return await self.applications.get_application(application_id)

    async def list_applications(self, account_id: str) -> list[Application]:
        return await self.applications.list_applications(account_id)

    async def list_providers(self, application_id: str) -> list[OidcProviderConfig]:
        return await self.applications.list_providers(application_id)

    async def get_provider(self, provider_id: str) -> Optional[OidcProviderConfig]:
        if not provider_id:
            return None
        return await self.applications.get_provider(provider_id)

    async def can_manage_application(
        self, application_id: str, user_id: str
    ) -> bool:
        application = await self.get_application(application_id)
        if application is None:
            return False
        return await self.account_registry.authorize(
            application.account_id, user_id, self.MIN_ROLE
        )

    async def can_manage_provider(self, provider_id: str, user_id: str) -> bool:
        """Resolve provider → application → account, then check the caller's role."""
        provider = await self.get_provider(provider_id)
        if provider is None:
            return False
        return await self.can_manage_application(provider.application_id, user_id)

    async def create_application(
        self,
        account_id: str,
        caller_user_id: str,
        display_name: str,
        auto_provision: bool,
        enable_provision: bool,
        redirect_uris: tuple[str, ...] = (),
    ) -> ApplicationModification:
        """
        Raises:
            AuthorizationError: If the caller is not Administrator or above
        """
        if not await self.account_registry.authorize(
            account_id, caller_user_id, self.MIN_ROLE
        ):
            raise AuthorizationError(field="AccountId")

        modification = Application.create(
            account_id=account_id,
            display_name=display_name.strip(),
            auto_provision=auto_provision,
            enable_provision=enable_provision,
            redirect_uris=tuple(redirect_uris),
        )
        await self.applications.add_application(modification.application)
        logger.info(
            f"Created application {modification.application.id} "
            f"in account {account_id}"
        )
        return modification

    async def create_oidc_provider(
        self,
        application_id: str,
        caller_user_id: str,
        settings: OidcProviderSettings,
    ) -> OidcProviderModification:
        """
        Raises:
            AuthorizationError: If the application is unknown or the caller
                is not Administrator or above on its account
        """
        application = await self.get_application(application_id)
        if application is None:
            raise AuthorizationError(
                "Application not found",
                field="ApplicationId",
                code=ErrorCodes.APPLICATION_NOT_FOUND.value,
            )
        if not await self.account_registry.authorize(
            application.account_id, caller_user_id, self.MIN_ROLE
        ):
            raise AuthorizationError(field="ApplicationId")

        modification = OidcProviderConfig.create(application.id, settings)
        demoted = await self.applications.save_provider(modification.provider)
        logger.info(
            f"Created OIDC provider {modification.provider.id} "
            f"for application {application.id}"
        )
        return self._with_demotions(modification, demoted)

    async def edit_oidc_provider(
        self,
        provider_id: str,
        caller_user_id: str,
        settings: OidcProviderSettings,
    ) -> OidcProviderModification:
        """
        Replace the provider's settings in full.

        Unknown and foreign providers are indistinguishable to the caller:
        both fail with NotAuthorized on ``Id``.
        """
        provider = await self.get_provider(provider_id)
        if provider is None or not await self.can_manage_application(
            provider.application_id, caller_user_id
        ):
            raise AuthorizationError(field="Id")

        modification = provider.replace(settings)
        demoted = await self.applications.save_provider(provider)
        logger.info(f"Edited OIDC provider {provider.id}")
        return self._with_demotions(modification, demoted)

    @staticmethod
    def _with_demotions(
        modification: OidcProviderModification,
        demoted: list[OidcProviderModification],
    ) -> OidcProviderModification:
        events = list(modification.events)
        for other in demoted:
            events.extend(other.events)
        return OidcProviderModification(modification.provider, events)
