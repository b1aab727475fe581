"""
Authorization State Ports.

Stores for in-flight authorization requests, issued grants and
interactive login sessions.
"""

from typing import Protocol, Optional, runtime_checkable

from gomsle.domain.authorization import (
    AuthorizationRequest,
    AuthorizationGrant,
    RefreshGrant,
    LoginSession,
)


@runtime_checkable
class AuthorizationRequestStorePort(Protocol):
    """Transient storage for authorization requests, keyed by request id."""

    async def get(self, request_id: str) -> Optional[AuthorizationRequest]:
        """Return the request if found and not expired."""
        ...

    async def save(self, request: AuthorizationRequest) -> None:
        ...

    async def delete(self, request_id: str) -> None:
        ...


@runtime_checkable
class GrantStorePort(Protocol):
    """
    Port for authorization codes and refresh tokens.

    ``redeem_*`` must be an atomic check-and-invalidate: of any number of
    concurrent redemptions of the same value at most one returns the grant.
    """

    async def add_code(self, grant: AuthorizationGrant) -> None:
        ...

    async def redeem_code(self, code: str) -> Optional[AuthorizationGrant]:
        ...

    async def add_refresh_token(self, grant: RefreshGrant) -> None:
        ...

    async def redeem_refresh_token(self, token: str) -> Optional[RefreshGrant]:
        ...


@runtime_checkable
class LoginSessionStorePort(Protocol):
    """Interactive sign-in sessions, keyed by the boundary's session id."""

    async def get(self, session_id: str) -> Optional[LoginSession]:
        ...

    async def save(self, session: LoginSession) -> None:
        ...

    async def delete(self, session_id: str) -> bool:
        """Remove a session. Returns whether one existed."""
        ...
