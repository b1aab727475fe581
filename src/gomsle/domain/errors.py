"""
Domain errors for the account, application and authorization system.

These errors provide a consistent interface for reporting failures
across registries, handlers and the protocol engine. Every error
carries a stable ``code`` that ends up in validation failures or in
protocol denials.
"""

from enum import Enum
from typing import Optional, Any, TYPE_CHECKING

if TYPE_CHECKING:
    from gomsle.domain.value_objects import ValidationFailure


class ErrorCodes(str, Enum):
    """Stable error codes surfaced to callers."""

    NOT_EMPTY = "NotEmpty"
    INVALID_EMAIL = "InvalidEmail"
    INVALID_URI = "InvalidUri"
    INVALID_ROLE = "InvalidRole"
    RESPONSE_TYPE_IS_INVALID = "ResponseTypeIsInvalid"
    ACCOUNT_NOT_FOUND = "AccountNotFound"
    APPLICATION_NOT_FOUND = "ApplicationNotFound"
    NOT_AUTHORIZED = "NotAuthorized"
    ONLY_ONE_OWNER = "OnlyOneOwner"
    DUPLICATE_EMAIL = "DuplicateEmail"
    DUPLICATE_NAME = "DuplicateName"
    INVITATION_NOT_FOUND = "InvitationNotFound"
    INVITATION_EXPIRED = "InvitationExpired"
    INVALID_TOKEN = "InvalidToken"
    INVALID_CREDENTIALS = "InvalidCredentials"
    EMAIL_NOT_CONFIRMED = "EmailNotConfirmed"
    NO_LOGIN_IN_PROGRESS = "NoLoginInProgress"
    NOTIFICATION_FAILED = "NotificationFailed"


class ProtocolErrorCodes(str, Enum):
    """OAuth2 / OIDC error codes (RFC 6749 section 4.1.2.1 and 5.2)."""

    INVALID_REQUEST = "invalid_request"
    INVALID_CLIENT = "invalid_client"
    INVALID_GRANT = "invalid_grant"
    INVALID_SCOPE = "invalid_scope"
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"
    UNSUPPORTED_RESPONSE_TYPE = "unsupported_response_type"
    ACCESS_DENIED = "access_denied"


class GomsleDomainError(Exception):
    """Base class for all domain errors."""

    def __init__(
        self,
        message: str,
        code: str = "DOMAIN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ValidationError(GomsleDomainError):
    """Raised when a command is malformed. No mutation was performed."""

    def __init__(
        self,
        failures: list["ValidationFailure"],
        message: str = "Validation failed",
    ):
        super().__init__(
            message,
            code="VALIDATION_FAILED",
            details={"failures": [f.to_dict() for f in failures]},
        )
        self.failures = failures


class AuthorizationError(GomsleDomainError):
    """Raised when the caller lacks the role required on an account."""

    def __init__(
        self,
        message: str = "Not authorized",
        field: str = "Id",
        code: str = ErrorCodes.NOT_AUTHORIZED.value,
    ):
        super().__init__(message, code, {"field": field})
        self.field = field


class ConflictError(GomsleDomainError):
    """
    Raised when a conditional write loses against existing state.

    Surfaced to callers as a validation-shaped failure even though it is
    detected at write time.
    """

    def __init__(self, message: str, code: str, field: str):
        super().__init__(message, code, {"field": field})
        self.field = field


class DuplicateNameError(ConflictError):
    def __init__(self, name: str):
        super().__init__(
            f"An account named '{name}' already exists",
            ErrorCodes.DUPLICATE_NAME.value,
            field="Name",
        )


class DuplicateEmailError(ConflictError):
    def __init__(self, email: str):
        super().__init__(
            f"Email '{email}' is already taken",
            ErrorCodes.DUPLICATE_EMAIL.value,
            field="Email",
        )


class OnlyOneOwnerError(ConflictError):
    def __init__(self, message: str = "An account can only have one owner"):
        super().__init__(message, ErrorCodes.ONLY_ONE_OWNER.value, field="Role")


class InvitationError(GomsleDomainError):
    """Raised when an invitation cannot be accepted."""

    def __init__(
        self,
        message: str = "Invitation not found",
        code: str = ErrorCodes.INVITATION_NOT_FOUND.value,
    ):
        super().__init__(message, code, {"field": "Token"})


class InvalidTokenError(GomsleDomainError):
    """Raised when a signed token or a one-time token is invalid."""

    def __init__(
        self,
        message: str = "Invalid token",
        code: str = ErrorCodes.INVALID_TOKEN.value,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)


class ProtocolError(GomsleDomainError):
    """
    OAuth2 / OIDC protocol failure.

    Never raised to the caller of the protocol engine; the engine turns it
    into a denied result carrying ``{code: description}``.
    """

    def __init__(
        self,
        code: ProtocolErrorCodes,
        description: str,
    ):
        super().__init__(description, code.value)
        self.description = description

    def to_dict(self) -> dict[str, str]:
        return {self.code: self.description}


class InfrastructureError(GomsleDomainError):
    """Raised when a store or the notification gateway is unavailable."""

    def __init__(
        self,
        message: str = "Infrastructure failure",
        code: str = "INFRASTRUCTURE_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)


class NotificationError(InfrastructureError):
    """Raised when the email gateway does not confirm dispatch."""

    def __init__(
        self,
        message: str = "Notification could not be sent",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, ErrorCodes.NOTIFICATION_FAILED.value, details)
