"""
FastAPI integration for gomsle.

Provides the OAuth2/OIDC connect router, the account router and uniform
exception handlers.
"""

from .router import SESSION_COOKIE, create_account_router, create_connect_router
from .exception_handlers import register_exception_handlers

__all__ = [
    "SESSION_COOKIE",
    "create_account_router",
    "create_connect_router",
    "register_exception_handlers",
]
