"""
Registry Repository Ports.

Stores for accounts, invitations, applications and OIDC provider
configurations. Stores are linearizable per key; uniqueness invariants
are enforced by conditional writes inside the store.
"""

from typing import Protocol, Optional, runtime_checkable

from gomsle.domain.aggregates import (
    Account,
    Invitation,
    Application,
    OidcProviderConfig,
    OidcProviderModification,
)


@runtime_checkable
class AccountRepositoryPort(Protocol):
    """
    Port for account and invitation persistence.

    Implementations: InMemoryAccountRepository (dev/test).
    """

    async def get(self, account_id: str) -> Optional[Account]:
        ...

    async def get_by_name(self, name: str) -> Optional[Account]:
        """Case-insensitive lookup by account name."""
        ...

    async def add(self, account: Account) -> None:
        """
        Insert a new account.

        Raises:
            DuplicateNameError: If the name is already taken
        """
        ...

    async def save(self, account: Account) -> None:
        ...

    async def add_invitation(self, invitation: Invitation) -> None:
        ...

    async def get_invitation(self, token: str) -> Optional[Invitation]:
        ...

    async def take_invitation(self, token: str) -> Optional[Invitation]:
        """Atomically remove and return the invitation for ``token``."""
        ...

    async def delete_invitation(self, invitation_id: str) -> None:
        ...


@runtime_checkable
class ApplicationRepositoryPort(Protocol):
    """
    Port for application and OIDC provider persistence.

    Implementations: InMemoryApplicationRepository (dev/test).
    """

    async def get_application(self, application_id: str) -> Optional[Application]:
        ...

    async def add_application(self, application: Application) -> None:
        ...

    async def list_applications(self, account_id: str) -> list[Application]:
        ...

    async def get_provider(self, provider_id: str) -> Optional[OidcProviderConfig]:
        ...

    async def list_providers(self, application_id: str) -> list[OidcProviderConfig]:
        ...

    async def save_provider(
        self, provider: OidcProviderConfig
    ) -> list[OidcProviderModification]:
        """
        Insert or replace ``provider``.

        When ``provider.is_default`` is set, every other default provider
        of the same application is demoted in the same atomic step.

        Returns:
            One modification per demoted provider
        """
        ...
