"""Application layer: commands, queries, validators, registries, handlers."""

from gomsle.application.commands import (
    Register,
    Confirm,
    Forgot,
    Reset,
    Login,
    CreateAccount,
    Invite,
    AcceptInvitation,
    CreateApplication,
    CreateOidcProvider,
    EditOidcProvider,
    Authorize,
    Exchange,
    Logout,
)
from gomsle.application.queries import GetTwoFactorProviders
from gomsle.application.results import (
    CommandResult,
    SignInResult,
    TwoFactorProvidersResult,
    ProtocolStatus,
    TokenSet,
    AuthorizeResult,
    ExchangeResult,
    LogoutResult,
)
from gomsle.application.registries import AccountRegistry, ApplicationRegistry
from gomsle.application.protocol import AuthorizationProtocolEngine
from gomsle.application.dispatcher import CommandDispatcher, HandlerNotFoundError

__all__ = [
    # Commands
    "Register",
    "Confirm",
    "Forgot",
    "Reset",
    "Login",
    "CreateAccount",
    "Invite",
    "AcceptInvitation",
    "CreateApplication",
    "CreateOidcProvider",
    "EditOidcProvider",
    "Authorize",
    "Exchange",
    "Logout",
    # Queries
    "GetTwoFactorProviders",
    # Results
    "CommandResult",
    "SignInResult",
    "TwoFactorProvidersResult",
    "ProtocolStatus",
    "TokenSet",
    "AuthorizeResult",
    "ExchangeResult",
    "LogoutResult",
    # Services
    "AccountRegistry",
    "ApplicationRegistry",
    "AuthorizationProtocolEngine",
    "CommandDispatcher",
    "HandlerNotFoundError",
]
