"""
Credential Store Adapters.

In-memory implementation of CredentialStorePort. Password hashing is
delegated to argon2-cffi.
"""

import asyncio
import logging
import secrets
import uuid
from typing import Dict, Optional, Tuple

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from gomsle.domain.errors import DuplicateEmailError
from gomsle.infrastructure.ports.credentials import CredentialStorePort, UserRecord

logger = logging.getLogger("gomsle.infrastructure.adapters.credentials")

_CONFIRMATION = "confirmation"
_PASSWORD_RESET = "password_reset"


def normalize_email(email: str) -> str:
    return email.strip().casefold()


class InMemoryCredentialStore(CredentialStorePort):
    """
    In-memory implementation of CredentialStorePort.

    Suitable for development and testing. Users are keyed by id with a
    secondary case-insensitive email index; one-time tokens are kept per
    (user, purpose) and consumed on redemption.

    Usage:
        store = InMemoryCredentialStore()
        user = await store.create_user("jane@gomsle.com", "s3cret")
        token = await store.generate_confirmation_token(user)
        await store.confirm_email(user.id, token)
    """

    def __init__(self, password_hasher: Optional[PasswordHasher] = None):
        self._hasher = password_hasher or PasswordHasher()
        self._users: Dict[str, UserRecord] = {}
        self._by_email: Dict[str, str] = {}
        self._tokens: Dict[Tuple[str, str], str] = {}
        self._lock = asyncio.Lock()

    async def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        user_id = self._by_email.get(normalize_email(email))
        return self._users.get(user_id) if user_id else None

    async def find_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        return self._users.get(user_id)

    async def create_user(
        self, email: str, password: Optional[str], user_name: Optional[str] = None
    ) -> UserRecord:
        key = normalize_email(email)
        async with self._lock:
            if key in self._by_email:
                raise DuplicateEmailError(email)
            user = UserRecord(
                id=str(uuid.uuid4()),
                email=email.strip(),
                user_name=user_name or email.strip(),
                password_hash=self._hasher.hash(password) if password else None,
            )
            self._users[user.id] = user
            self._by_email[key] = user.id
        logger.debug(f"Created user: {user.id}")
        return user

    async def save_user(self, user: UserRecord) -> None:
        """Insert or update a user record as-is (seeding and administration)."""
        async with self._lock:
            key = normalize_email(user.email)
            owner = self._by_email.get(key)
            if owner is not None and owner != user.id:
                raise DuplicateEmailError(user.email)
            self._users[user.id] = user
            self._by_email[key] = user.id

    async def set_password(self, user: UserRecord, password: str) -> None:
        user.password_hash = self._hasher.hash(password)

    async def delete_user(self, user_id: str) -> None:
        async with self._lock:
            user = self._users.pop(user_id, None)
            if user is not None:
                self._by_email.pop(normalize_email(user.email), None)
            for purpose in (_CONFIRMATION, _PASSWORD_RESET):
                self._tokens.pop((user_id, purpose), None)
        logger.debug(f"Deleted user: {user_id}")

    async def generate_confirmation_token(self, user: UserRecord) -> str:
        return self._issue_token(user.id, _CONFIRMATION)

    async def confirm_email(self, user_id: str, token: str) -> bool:
        user = self._users.get(user_id)
        if user is None or not self._redeem_token(user_id, _CONFIRMATION, token):
            return False
        user.email_confirmed = True
        return True

    async def generate_password_reset_token(self, user: UserRecord) -> str:
        return self._issue_token(user.id, _PASSWORD_RESET)

    async def reset_password(
        self, user_id: str, token: str, new_password: str
    ) -> bool:
        user = self._users.get(user_id)
        if user is None or not self._redeem_token(user_id, _PASSWORD_RESET, token):
            return False
        user.password_hash = self._hasher.hash(new_password)
        return True

    async def verify_password(self, user: UserRecord, password: str) -> bool:
        if not user.password_hash or not password:
            return False
        try:
            return self._hasher.verify(user.password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    async def get_two_factor_providers(self, user: UserRecord) -> list[str]:
        providers = []
        if user.email_confirmed:
            providers.append("Email")
        if user.authenticator_key:
            providers.append("Authenticator")
        return providers

    def _issue_token(self, user_id: str, purpose: str) -> str:
        token = secrets.token_urlsafe(32)
        self._tokens[(user_id, purpose)] = token
        return token

    def _redeem_token(self, user_id: str, purpose: str, token: str) -> bool:
        expected = self._tokens.get((user_id, purpose))
        if expected is None or not token:
            return False
        if not secrets.compare_digest(expected, token):
            return False
        del self._tokens[(user_id, purpose)]
        return True

    def clear(self) -> None:
        """Clear all users and tokens (for testing)."""
        self._users.clear()
        self._by_email.clear()
        self._tokens.clear()
