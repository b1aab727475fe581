"""Port interfaces (Protocols) for infrastructure adapters."""

from gomsle.infrastructure.ports.credentials import (
    CredentialStorePort,
    UserRecord,
)
from gomsle.infrastructure.ports.communication import (
    EmailSenderPort,
    EmailMessage,
)
from gomsle.infrastructure.ports.repositories import (
    AccountRepositoryPort,
    ApplicationRepositoryPort,
)
from gomsle.infrastructure.ports.grants import (
    AuthorizationRequestStorePort,
    GrantStorePort,
    LoginSessionStorePort,
)
from gomsle.infrastructure.ports.signing import TokenSignerPort

__all__ = [
    # Credentials
    "CredentialStorePort",
    "UserRecord",
    # Communication
    "EmailSenderPort",
    "EmailMessage",
    # Registries
    "AccountRepositoryPort",
    "ApplicationRepositoryPort",
    # Authorization state
    "AuthorizationRequestStorePort",
    "GrantStorePort",
    "LoginSessionStorePort",
    # Signing
    "TokenSignerPort",
]
