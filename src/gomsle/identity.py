"""
Caller identity.

The authenticated principal is always passed explicitly to validators
and handlers. Nothing in this package reads the caller from ambient
context.
"""

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class Identity(Protocol):
    """Protocol for identity information passed to handlers."""

    @property
    def user_id(self) -> str:
        """Unique identifier for the user."""
        ...

    @property
    def email(self) -> Optional[str]:
        ...

    @property
    def is_authenticated(self) -> bool:
        """Whether the identity represents an authenticated user."""
        ...


class AnonymousPrincipal:
    """Default identity for unauthenticated callers."""

    user_id = "anonymous"
    email = None
    is_authenticated = False


@dataclass(frozen=True)
class Principal:
    """Concrete identity for an authenticated user."""

    user_id: str
    email: Optional[str] = None
    is_authenticated: bool = True


ANONYMOUS = AnonymousPrincipal()
