"""
Authorization State Adapters.

In-memory stores for authorization requests, single-use grants and
login sessions.
"""

import asyncio
import logging
from typing import Dict, Optional

from gomsle.domain.authorization import (
    AuthorizationRequest,
    AuthorizationGrant,
    RefreshGrant,
    LoginSession,
)
from gomsle.infrastructure.ports.grants import (
    AuthorizationRequestStorePort,
    GrantStorePort,
    LoginSessionStorePort,
)

logger = logging.getLogger("gomsle.infrastructure.adapters.grants")


class InMemoryAuthorizationRequestStore(AuthorizationRequestStorePort):
    """In-memory AuthorizationRequestStorePort; expired requests are dropped on read."""

    def __init__(self):
        self._requests: Dict[str, AuthorizationRequest] = {}

    async def get(self, request_id: str) -> Optional[AuthorizationRequest]:
        request = self._requests.get(request_id)
        if request is None:
            return None
        if request.is_expired():
            await self.delete(request_id)
            return None
        return request

    async def save(self, request: AuthorizationRequest) -> None:
        self._requests[request.id] = request
        logger.debug(f"Saved authorization request: {request.id}")

    async def delete(self, request_id: str) -> None:
        self._requests.pop(request_id, None)


class InMemoryGrantStore(GrantStorePort):
    """
    In-memory implementation of GrantStorePort.

    Redemption pops the grant under a lock: the first caller gets it,
    every later or concurrent caller gets None.
    """

    def __init__(self):
        self._codes: Dict[str, AuthorizationGrant] = {}
        self._refresh_tokens: Dict[str, RefreshGrant] = {}
        self._lock = asyncio.Lock()

    async def add_code(self, grant: AuthorizationGrant) -> None:
        async with self._lock:
            self._codes[grant.code] = grant
        logger.debug(f"Issued authorization code for request {grant.request_id}")

    async def redeem_code(self, code: str) -> Optional[AuthorizationGrant]:
        async with self._lock:
            return self._codes.pop(code, None)

    async def add_refresh_token(self, grant: RefreshGrant) -> None:
        async with self._lock:
            self._refresh_tokens[grant.token] = grant
        logger.debug(f"Issued refresh token for request {grant.request_id}")

    async def redeem_refresh_token(self, token: str) -> Optional[RefreshGrant]:
        async with self._lock:
            return self._refresh_tokens.pop(token, None)

    def clear(self) -> None:
        """Clear all grants (for testing)."""
        self._codes.clear()
        self._refresh_tokens.clear()


class InMemoryLoginSessionStore(LoginSessionStorePort):
    def __init__(self):
        self._sessions: Dict[str, LoginSession] = {}

    async def get(self, session_id: str) -> Optional[LoginSession]:
        return self._sessions.get(session_id)

    async def save(self, session: LoginSession) -> None:
        self._sessions[session.id] = session
        logger.debug(f"Saved login session: {session.id}")

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None
