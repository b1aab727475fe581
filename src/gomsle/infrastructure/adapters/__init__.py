"""Concrete infrastructure adapters (credentials, registries, grants, tokens, email)."""

from gomsle.infrastructure.adapters.credentials import InMemoryCredentialStore
from gomsle.infrastructure.adapters.repositories import (
    InMemoryAccountRepository,
    InMemoryApplicationRepository,
)
from gomsle.infrastructure.adapters.grants import (
    InMemoryAuthorizationRequestStore,
    InMemoryGrantStore,
    InMemoryLoginSessionStore,
)
from gomsle.infrastructure.adapters.tokens import JoseTokenSigner
from gomsle.infrastructure.adapters.communication import (
    ConsoleEmailSender,
    AsyncSMTPEmailSender,
)

__all__ = [
    # Credentials
    "InMemoryCredentialStore",
    # Registries
    "InMemoryAccountRepository",
    "InMemoryApplicationRepository",
    # Authorization state
    "InMemoryAuthorizationRequestStore",
    "InMemoryGrantStore",
    "InMemoryLoginSessionStore",
    # Signing
    "JoseTokenSigner",
    # Communication
    "ConsoleEmailSender",
    "AsyncSMTPEmailSender",
]
