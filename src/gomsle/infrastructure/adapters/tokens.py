"""
Token Signing Adapter.

JWT signing and verification with python-jose.
"""

import logging
from typing import Any, Optional

from jose import jwt, JWTError

from gomsle.domain.errors import InvalidTokenError
from gomsle.infrastructure.ports.signing import TokenSignerPort

logger = logging.getLogger("gomsle.infrastructure.adapters.tokens")


class JoseTokenSigner(TokenSignerPort):
    """
    python-jose implementation of TokenSignerPort.

    ``key`` is a shared secret for HS* algorithms or a PEM private key for
    RS*/ES*; ``verification_key`` defaults to ``key`` and must be set to the
    public key for asymmetric algorithms.

    Usage:
        signer = JoseTokenSigner(key="secret", issuer="https://id.gomsle.com")
        token = signer.sign({"sub": "user-1", "aud": "app-1", "exp": ...})
        claims = signer.verify(token, audience="app-1")
    """

    def __init__(
        self,
        key: str,
        issuer: str,
        algorithm: str = "HS256",
        verification_key: Optional[str] = None,
    ):
        self.key = key
        self.issuer = issuer
        self.algorithm = algorithm
        self.verification_key = verification_key or key

    def sign(self, claims: dict[str, Any]) -> str:
        payload = {"iss": self.issuer, **claims}
        return jwt.encode(payload, self.key, algorithm=self.algorithm)

    def verify(self, token: str, audience: Optional[str] = None) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self.verification_key,
                algorithms=[self.algorithm],
                audience=audience,
                issuer=self.issuer,
                options={"verify_aud": audience is not None},
            )
        except JWTError as e:
            logger.debug(f"Token verification failed: {e}")
            raise InvalidTokenError(f"Invalid token: {e}")
