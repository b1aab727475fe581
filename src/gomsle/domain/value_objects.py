"""
Domain value objects.

Value objects are immutable and have no identity. They are defined
only by their attributes.

Uses ValueObject base class from py-cqrs-ddd-toolkit.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from cqrs_ddd.ddd import ValueObject


# ═══════════════════════════════════════════════════════════════
# ROLES
# ═══════════════════════════════════════════════════════════════


class AccountRole(str, Enum):
    """
    Role of a user within an account.

    Capabilities nest: Owner ⊇ Administrator ⊇ Member. A check for
    "Administrator or above" passes for Owner and Administrator.
    """

    OWNER = "Owner"
    ADMINISTRATOR = "Administrator"
    MEMBER = "Member"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def satisfies(self, minimum: "AccountRole") -> bool:
        """Whether this role grants at least the capabilities of ``minimum``."""
        return self.rank >= minimum.rank


_ROLE_RANK = {
    AccountRole.MEMBER: 1,
    AccountRole.ADMINISTRATOR: 2,
    AccountRole.OWNER: 3,
}


# ═══════════════════════════════════════════════════════════════
# OIDC
# ═══════════════════════════════════════════════════════════════


ALLOWED_RESPONSE_TYPES = frozenset(
    {
        "code",
        "id_token",
        "id_token token",
        "code id_token",
        "code token",
        "code id_token token",
    }
)

# Scopes the authorization server itself understands, independent of any
# configured external provider.
STANDARD_SCOPES = frozenset({"openid", "offline_access"})


def normalize_response_type(value: Optional[str]) -> Optional[str]:
    """Order-insensitive normalization: ``"id_token code"`` -> ``"code id_token"``."""
    if value is None:
        return None
    parts = value.split()
    order = {"code": 0, "id_token": 1, "token": 2}
    return " ".join(sorted(parts, key=lambda p: (order.get(p, 99), p)))


def is_allowed_response_type(value: Optional[str]) -> bool:
    return normalize_response_type(value) in ALLOWED_RESPONSE_TYPES


def normalize_scopes(scopes: Optional[Iterable[str]]) -> tuple[str, ...]:
    """Ordered, de-duplicated scope tuple with blanks removed."""
    seen: dict[str, None] = {}
    for scope in scopes or ():
        scope = scope.strip()
        if scope:
            seen.setdefault(scope, None)
    return tuple(seen)


def parse_scope_string(scope: Optional[str]) -> tuple[str, ...]:
    return normalize_scopes((scope or "").split())


@dataclass(frozen=True)
class OidcProviderSettings(ValueObject):
    """
    The editable part of an OIDC provider configuration.

    Creation and edits both carry a full settings record; edits are
    full-record replacements.
    """

    name: str
    authority_url: str
    client_id: str
    client_secret: str
    response_type: str
    scopes: tuple[str, ...] = ()
    is_default: bool = False
    is_visible: bool = True


# ═══════════════════════════════════════════════════════════════
# VALIDATION
# ═══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ValidationFailure(ValueObject):
    """A single (field, code, message) failure reported by a validator."""

    field: str
    code: str
    message: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "code": self.code, "message": self.message}


@dataclass(frozen=True)
class AccountUser(ValueObject):
    """Membership of a user in an account."""

    account_id: str
    user_id: str
    role: AccountRole
