"""
Token Signing Port.

Pluggable signing capability backing the tokens issued by the
authorization protocol engine.
"""

from typing import Protocol, Any, runtime_checkable


@runtime_checkable
class TokenSignerPort(Protocol):
    """
    Port for signing and verifying JWTs.

    Implementations: JoseTokenSigner (python-jose).
    """

    def sign(self, claims: dict[str, Any]) -> str:
        """Serialize and sign ``claims`` into a compact JWS."""
        ...

    def verify(self, token: str, audience: str | None = None) -> dict[str, Any]:
        """
        Verify signature, issuer and expiry and return the claims.

        Raises:
            InvalidTokenError: If the token is invalid or expired
        """
        ...
