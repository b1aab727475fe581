"""
Account, application and protocol commands.

Commands represent intentions to change state. Each command
is handled by a corresponding handler.

Every command carries the authenticated ``principal`` that issued it;
validators and handlers never look the caller up elsewhere. Fields a
caller must supply default to ``None`` so that validators can report
them as missing.

Uses Command base class from py-cqrs-ddd-toolkit.
"""

from dataclasses import dataclass, field
from typing import Optional, List

from cqrs_ddd.core import Command

from gomsle.identity import ANONYMOUS, Identity


# ═══════════════════════════════════════════════════════════════
# CREDENTIAL COMMANDS
# ═══════════════════════════════════════════════════════════════


@dataclass(kw_only=True)
class Register(Command):
    """
    Create a user and send a confirmation email.

    The emailed link points at ``confirmation_url`` with the user id and
    confirmation token appended as query parameters.
    """

    email: Optional[str] = None
    password: Optional[str] = None
    user_name: Optional[str] = None
    return_url: Optional[str] = None
    confirmation_url: Optional[str] = None
    principal: Identity = ANONYMOUS


@dataclass(kw_only=True)
class Confirm(Command):
    """Redeem an email-confirmation token."""

    user_id: Optional[str] = None
    token: Optional[str] = None
    return_url: Optional[str] = None
    principal: Identity = ANONYMOUS


@dataclass(kw_only=True)
class Forgot(Command):
    """Send a password-reset email to ``email`` if such a user exists."""

    email: Optional[str] = None
    reset_url: Optional[str] = None
    principal: Identity = ANONYMOUS


@dataclass(kw_only=True)
class Reset(Command):
    """Set a new password using a password-reset token."""

    user_id: Optional[str] = None
    token: Optional[str] = None
    password: Optional[str] = None
    return_url: Optional[str] = None
    principal: Identity = ANONYMOUS


@dataclass(kw_only=True)
class Login(Command):
    """
    Interactive password sign-in.

    ``session_id`` identifies the boundary's session (cookie, etc.); the
    resulting login session is stored under it.
    """

    email: Optional[str] = None
    password: Optional[str] = None
    session_id: Optional[str] = None
    principal: Identity = ANONYMOUS


# ═══════════════════════════════════════════════════════════════
# ACCOUNT COMMANDS
# ═══════════════════════════════════════════════════════════════


@dataclass(kw_only=True)
class CreateAccount(Command):
    """Create an account; the principal becomes its sole Owner."""

    name: Optional[str] = None
    principal: Identity = ANONYMOUS


@dataclass(kw_only=True)
class Invite(Command):
    """Invite ``email`` into the account named ``account_name``."""

    account_name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = "Member"
    invitation_url: Optional[str] = None
    principal: Identity = ANONYMOUS


@dataclass(kw_only=True)
class AcceptInvitation(Command):
    """Join the invited account as the principal."""

    token: Optional[str] = None
    principal: Identity = ANONYMOUS


# ═══════════════════════════════════════════════════════════════
# APPLICATION COMMANDS
# ═══════════════════════════════════════════════════════════════


@dataclass(kw_only=True)
class CreateApplication(Command):
    account_id: Optional[str] = None
    display_name: Optional[str] = None
    auto_provision: Optional[bool] = None
    enable_provision: Optional[bool] = None
    redirect_uris: List[str] = field(default_factory=list)
    principal: Identity = ANONYMOUS


@dataclass(kw_only=True)
class CreateOidcProvider(Command):
    application_id: Optional[str] = None
    name: Optional[str] = None
    authority_url: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    response_type: Optional[str] = None
    scopes: List[str] = field(default_factory=list)
    is_default: Optional[bool] = None
    is_visible: Optional[bool] = None
    principal: Identity = ANONYMOUS


@dataclass(kw_only=True)
class EditOidcProvider(Command):
    """Full-record replacement of the provider identified by ``id``."""

    id: Optional[str] = None
    name: Optional[str] = None
    authority_url: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    response_type: Optional[str] = None
    scopes: List[str] = field(default_factory=list)
    is_default: Optional[bool] = None
    is_visible: Optional[bool] = None
    principal: Identity = ANONYMOUS


# ═══════════════════════════════════════════════════════════════
# PROTOCOL COMMANDS
# ═══════════════════════════════════════════════════════════════


@dataclass(kw_only=True)
class Authorize(Command):
    """
    OAuth2/OIDC authorization request.

    Either the protocol parameters are given, or ``request_id`` names a
    request stored by an earlier call that ended in a challenge.
    """

    client_id: Optional[str] = None
    redirect_uri: Optional[str] = None
    response_type: Optional[str] = None
    scope: Optional[str] = None
    state: Optional[str] = None
    nonce: Optional[str] = None
    request_id: Optional[str] = None
    session_id: Optional[str] = None


@dataclass(kw_only=True)
class Exchange(Command):
    """OAuth2 token request."""

    grant_type: Optional[str] = None
    client_id: Optional[str] = None
    code: Optional[str] = None
    redirect_uri: Optional[str] = None
    refresh_token: Optional[str] = None


@dataclass(kw_only=True)
class Logout(Command):
    """
    End the login session.

    ``post_logout_redirect_uri`` is echoed back when it is a local path or
    a redirect URI registered on ``client_id``.
    """

    session_id: Optional[str] = None
    client_id: Optional[str] = None
    post_logout_redirect_uri: Optional[str] = None
