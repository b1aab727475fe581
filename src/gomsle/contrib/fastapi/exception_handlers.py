"""
Exception handlers for FastAPI.

Maps domain errors to HTTP responses.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from gomsle.domain.errors import (
    AuthorizationError,
    ConflictError,
    GomsleDomainError,
    InfrastructureError,
    InvalidTokenError,
    InvitationError,
    ProtocolError,
    ValidationError,
)


def _error_response(status_code: int, exc: GomsleDomainError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "message": exc.message, "details": exc.details},
    )


async def validation_error_handler(request: Request, exc: ValidationError):
    """Handle ValidationError (400)."""
    return _error_response(status.HTTP_400_BAD_REQUEST, exc)


async def authorization_error_handler(request: Request, exc: AuthorizationError):
    """Handle AuthorizationError (403)."""
    return _error_response(status.HTTP_403_FORBIDDEN, exc)


async def conflict_error_handler(request: Request, exc: ConflictError):
    """Handle ConflictError (409)."""
    return _error_response(status.HTTP_409_CONFLICT, exc)


async def invitation_error_handler(request: Request, exc: InvitationError):
    """Handle InvitationError (400)."""
    return _error_response(status.HTTP_400_BAD_REQUEST, exc)


async def invalid_token_error_handler(request: Request, exc: InvalidTokenError):
    """Handle InvalidTokenError (401)."""
    return _error_response(status.HTTP_401_UNAUTHORIZED, exc)


async def protocol_error_handler(request: Request, exc: ProtocolError):
    """Handle ProtocolError (400) with an OAuth2 error body."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": exc.code, "error_description": exc.description},
    )


async def infrastructure_error_handler(request: Request, exc: InfrastructureError):
    """Handle InfrastructureError (502): a store or gateway is unavailable."""
    return _error_response(status.HTTP_502_BAD_GATEWAY, exc)


def register_exception_handlers(app):
    """
    Register uniform exception handlers for the FastAPI app.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(AuthorizationError, authorization_error_handler)
    app.add_exception_handler(ConflictError, conflict_error_handler)
    app.add_exception_handler(InvitationError, invitation_error_handler)
    app.add_exception_handler(InvalidTokenError, invalid_token_error_handler)
    app.add_exception_handler(ProtocolError, protocol_error_handler)
    app.add_exception_handler(InfrastructureError, infrastructure_error_handler)
