"""
gomsle: multi-tenant OAuth2/OIDC identity backend.

Built using CQRS and DDD patterns from py-cqrs-ddd-toolkit.
"""

__version__ = "0.1.0"

from gomsle.config import GomsleSettings, SmtpSettings
from gomsle.identity import (
    Identity,
    AnonymousPrincipal,
    Principal,
    ANONYMOUS,
)

__all__ = [
    "__version__",
    "GomsleSettings",
    "SmtpSettings",
    "Identity",
    "AnonymousPrincipal",
    "Principal",
    "ANONYMOUS",
]
