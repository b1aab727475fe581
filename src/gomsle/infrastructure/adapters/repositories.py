"""
Registry Repository Adapters.

In-memory backends for AccountRepositoryPort and ApplicationRepositoryPort.
Conditional writes (unique names, the single default provider, invitation
consumption) run under an asyncio.Lock so they are atomic per store.
"""

import asyncio
import logging
from typing import Dict, Optional

from gomsle.domain.aggregates import (
    Account,
    Invitation,
    Application,
    OidcProviderConfig,
    OidcProviderModification,
    normalize_name,
)
from gomsle.domain.errors import DuplicateNameError
from gomsle.infrastructure.ports.repositories import (
    AccountRepositoryPort,
    ApplicationRepositoryPort,
)

logger = logging.getLogger("gomsle.infrastructure.adapters.repositories")


# ═══════════════════════════════════════════════════════════════
# ACCOUNTS
# ═══════════════════════════════════════════════════════════════


class InMemoryAccountRepository(AccountRepositoryPort):
    """
    In-memory implementation of AccountRepositoryPort.

    Suitable for development and testing. Not for production
    as accounts are lost on restart and not distributed.
    """

    def __init__(self):
        self._accounts: Dict[str, Account] = {}
        self._names: Dict[str, str] = {}
        self._invitations: Dict[str, Invitation] = {}
        self._lock = asyncio.Lock()

    async def get(self, account_id: str) -> Optional[Account]:
        return self._accounts.get(account_id)

    async def get_by_name(self, name: str) -> Optional[Account]:
        account_id = self._names.get(normalize_name(name))
        return self._accounts.get(account_id) if account_id else None

    async def add(self, account: Account) -> None:
        async with self._lock:
            key = account.normalized_name
            if key in self._names:
                raise DuplicateNameError(account.name)
            self._names[key] = account.id
            self._accounts[account.id] = account
        logger.debug(f"Added account: {account.id}")

    async def save(self, account: Account) -> None:
        async with self._lock:
            self._accounts[account.id] = account
        logger.debug(f"Saved account: {account.id}")

    async def add_invitation(self, invitation: Invitation) -> None:
        async with self._lock:
            self._invitations[invitation.token] = invitation
        logger.debug(f"Added invitation: {invitation.id}")

    async def get_invitation(self, token: str) -> Optional[Invitation]:
        return self._invitations.get(token)

    async def take_invitation(self, token: str) -> Optional[Invitation]:
        async with self._lock:
            return self._invitations.pop(token, None)

    async def delete_invitation(self, invitation_id: str) -> None:
        async with self._lock:
            for token, invitation in list(self._invitations.items()):
                if invitation.id == invitation_id:
                    del self._invitations[token]
        logger.debug(f"Deleted invitation: {invitation_id}")

    def clear(self) -> None:
        """Clear all accounts and invitations (for testing)."""
        self._accounts.clear()
        self._names.clear()
        self._invitations.clear()


# ═══════════════════════════════════════════════════════════════
# APPLICATIONS AND OIDC PROVIDERS
# ═══════════════════════════════════════════════════════════════


class InMemoryApplicationRepository(ApplicationRepositoryPort):
    """
    In-memory implementation of ApplicationRepositoryPort.

    ``save_provider`` flips the default flag of sibling providers in
    the same critical section that stores the new default, so an
    application never observes two defaults.
    """

    def __init__(self):
        self._applications: Dict[str, Application] = {}
        self._providers: Dict[str, OidcProviderConfig] = {}
        self._lock = asyncio.Lock()

    async def get_application(self, application_id: str) -> Optional[Application]:
        return self._applications.get(application_id)

    async def add_application(self, application: Application) -> None:
        async with self._lock:
            self._applications[application.id] = application
        logger.debug(f"Added application: {application.id}")

    async def list_applications(self, account_id: str) -> list[Application]:
        return [
            application
            for application in self._applications.values()
            if application.account_id == account_id
        ]

    async def get_provider(self, provider_id: str) -> Optional[OidcProviderConfig]:
        return self._providers.get(provider_id)

    async def list_providers(self, application_id: str) -> list[OidcProviderConfig]:
        return [
            provider
            for provider in self._providers.values()
            if provider.application_id == application_id
        ]

    async def save_provider(
        self, provider: OidcProviderConfig
    ) -> list[OidcProviderModification]:
        demoted = []
        async with self._lock:
            if provider.is_default:
                for other in self._providers.values():
                    if (
                        other.id != provider.id
                        and other.application_id == provider.application_id
                        and other.is_default
                    ):
                        demoted.append(other.demote(replaced_by=provider.id))
            self._providers[provider.id] = provider

        for modification in demoted:
            logger.info(
                f"Provider {modification.provider.id} is no longer default for "
                f"application {modification.provider.application_id}"
            )
        logger.debug(f"Saved provider: {provider.id}")
        return demoted

    def clear(self) -> None:
        """Clear all applications and providers (for testing)."""
        self._applications.clear()
        self._providers.clear()
