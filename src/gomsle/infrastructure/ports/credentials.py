"""
Credential Store Port.

Defines the interface of the external store holding users, their
password credentials, one-time confirmation/reset tokens and
two-factor state.
"""

from dataclasses import dataclass
from typing import Protocol, Optional, runtime_checkable


@dataclass
class UserRecord:
    """A user as held by the credential store."""

    id: str
    email: str
    user_name: str = ""
    password_hash: Optional[str] = None
    email_confirmed: bool = False
    two_factor_enabled: bool = False
    authenticator_key: Optional[str] = None

    def to_dict(self) -> dict:
        """Public view; never includes the password hash."""
        return {
            "id": self.id,
            "email": self.email,
            "user_name": self.user_name,
            "email_confirmed": self.email_confirmed,
            "two_factor_enabled": self.two_factor_enabled,
        }


@runtime_checkable
class CredentialStorePort(Protocol):
    """
    Port for the credential store.

    Implementations: InMemoryCredentialStore (dev/test); production
    deployments back it with their user database.

    Email uniqueness is case-insensitive and must be enforced with a
    conditional write: ``create_user`` raises ``DuplicateEmailError``
    rather than overwriting.
    """

    async def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        """Case-insensitive lookup by email."""
        ...

    async def find_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        ...

    async def create_user(
        self, email: str, password: Optional[str], user_name: Optional[str] = None
    ) -> UserRecord:
        """
        Create a user.

        Raises:
            DuplicateEmailError: If the email is already taken
        """
        ...

    async def delete_user(self, user_id: str) -> None:
        """Remove a user (used to compensate a failed registration)."""
        ...

    async def generate_confirmation_token(self, user: UserRecord) -> str:
        ...

    async def confirm_email(self, user_id: str, token: str) -> bool:
        """Redeem a confirmation token. Returns False if invalid."""
        ...

    async def generate_password_reset_token(self, user: UserRecord) -> str:
        ...

    async def reset_password(
        self, user_id: str, token: str, new_password: str
    ) -> bool:
        """Redeem a reset token and set a new password. Returns False if invalid."""
        ...

    async def verify_password(self, user: UserRecord, password: str) -> bool:
        ...

    async def get_two_factor_providers(self, user: UserRecord) -> list[str]:
        """Names of the second-factor providers usable by ``user``."""
        ...
