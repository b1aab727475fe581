"""Domain layer for accounts, applications and authorization."""

from gomsle.domain.errors import (
    ErrorCodes,
    ProtocolErrorCodes,
    GomsleDomainError,
    ValidationError,
    AuthorizationError,
    ConflictError,
    DuplicateNameError,
    DuplicateEmailError,
    OnlyOneOwnerError,
    InvitationError,
    InvalidTokenError,
    ProtocolError,
    InfrastructureError,
    NotificationError,
)
from gomsle.domain.value_objects import (
    AccountRole,
    AccountUser,
    OidcProviderSettings,
    ValidationFailure,
    ALLOWED_RESPONSE_TYPES,
    STANDARD_SCOPES,
)
from gomsle.domain.events import (
    AccountCreated,
    UserInvited,
    MemberAdded,
    ApplicationCreated,
    OidcProviderCreated,
    OidcProviderEdited,
    DefaultProviderDemoted,
    UserRegistered,
    EmailConfirmed,
    PasswordReset,
    UserSignedIn,
    UserSignedOut,
    AuthorizationChallenged,
    AuthorizationGranted,
    TokensIssued,
)
from gomsle.domain.aggregates import (
    Account,
    Invitation,
    Application,
    OidcProviderConfig,
)
from gomsle.domain.authorization import (
    AuthorizationState,
    AuthorizationRequest,
    AuthorizationGrant,
    RefreshGrant,
    LoginSession,
    LoginSessionStatus,
)

__all__ = [
    # Errors
    "ErrorCodes",
    "ProtocolErrorCodes",
    "GomsleDomainError",
    "ValidationError",
    "AuthorizationError",
    "ConflictError",
    "DuplicateNameError",
    "DuplicateEmailError",
    "OnlyOneOwnerError",
    "InvitationError",
    "InvalidTokenError",
    "ProtocolError",
    "InfrastructureError",
    "NotificationError",
    # Value Objects
    "AccountRole",
    "AccountUser",
    "OidcProviderSettings",
    "ValidationFailure",
    "ALLOWED_RESPONSE_TYPES",
    "STANDARD_SCOPES",
    # Events
    "AccountCreated",
    "UserInvited",
    "MemberAdded",
    "ApplicationCreated",
    "OidcProviderCreated",
    "OidcProviderEdited",
    "DefaultProviderDemoted",
    "UserRegistered",
    "EmailConfirmed",
    "PasswordReset",
    "UserSignedIn",
    "UserSignedOut",
    "AuthorizationChallenged",
    "AuthorizationGranted",
    "TokensIssued",
    # Aggregates & Entities
    "Account",
    "Invitation",
    "Application",
    "OidcProviderConfig",
    "AuthorizationState",
    "AuthorizationRequest",
    "AuthorizationGrant",
    "RefreshGrant",
    "LoginSession",
    "LoginSessionStatus",
]
