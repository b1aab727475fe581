"""
Command and query handlers.

Every mutating handler follows validate-then-mutate: the command's
validator runs first and a non-empty failure list short-circuits before
any side effect. Conflicts detected at write time (duplicate name or
email, a second owner) and authorization failures raised by the
registries are returned as invalid results, not raised.

Commands that send email await the gateway. If it does not confirm
dispatch, the preceding mutation is compensated (the invitation or the
registered user is deleted) and the command fails with NotificationFailed
on ``Email``.

Uses CommandHandler/QueryHandler base classes from py-cqrs-ddd-toolkit.
"""

import logging
from typing import Any, List, Optional

from cqrs_ddd.core import (
    CommandHandler,
    CommandResponse,
    QueryHandler,
    QueryResponse,
)

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
from gomsle.application.protocol import AuthorizationProtocolEngine
from gomsle.application.queries import GetTwoFactorProviders
from gomsle.application.registries import AccountRegistry, ApplicationRegistry
from gomsle.application.results import (
    CommandResult,
    SignInResult,
    TwoFactorProvidersResult,
    AuthorizeResult,
    ExchangeResult,
    LogoutResult,
)
from gomsle.application.urls import append_params
from gomsle.application.validators import (
    CommandValidator,
    RegisterValidator,
    ConfirmValidator,
    ForgotValidator,
    ResetValidator,
    LoginValidator,
    CreateAccountValidator,
    InviteValidator,
    AcceptInvitationValidator,
    CreateApplicationValidator,
    CreateOidcProviderValidator,
    EditOidcProviderValidator,
    parse_role,
)
from gomsle.domain.aggregates import (
    Account,
    Application,
    Invitation,
    OidcProviderConfig,
)
from gomsle.domain.authorization import LoginSession
from gomsle.domain.errors import (
    ErrorCodes,
    GomsleDomainError,
    ConflictError,
    AuthorizationError,
    InvitationError,
    NotificationError,
)
from gomsle.domain.events import (
    UserRegistered,
    EmailConfirmed,
    PasswordReset,
)
from gomsle.domain.value_objects import AccountUser, OidcProviderSettings
from gomsle.infrastructure.ports.communication import EmailMessage, EmailSenderPort
from gomsle.infrastructure.ports.credentials import CredentialStorePort, UserRecord
from gomsle.infrastructure.ports.grants import LoginSessionStorePort

logger = logging.getLogger("gomsle.application.handlers")


# ═══════════════════════════════════════════════════════════════
# SHARED HELPERS
# ═══════════════════════════════════════════════════════════════


def _respond(command: Any, result: Any, events: Optional[List[Any]] = None):
    return CommandResponse(
        result=result,
        events=events or [],
        correlation_id=command.correlation_id,
        causation_id=command.command_id,
    )


def _failure_from(error: GomsleDomainError) -> CommandResult:
    field = getattr(error, "field", None) or error.details.get("field", "")
    return CommandResult.failure(field, error.code, error.message)


def _notification_failed() -> CommandResult:
    return CommandResult.failure(
        "Email",
        ErrorCodes.NOTIFICATION_FAILED.value,
        "The email could not be sent.",
    )


async def send_notification(sender: EmailSenderPort, message: EmailMessage) -> None:
    """
    Send ``message`` and wait for the gateway to accept it.

    Raises:
        NotificationError: If the gateway fails for any reason
    """
    try:
        await sender.send(message)
    except Exception as e:
        logger.warning(f"Notification to {', '.join(message.to)} failed: {e}")
        raise NotificationError(details={"reason": str(e)}) from e


class _ValidatingHandler:
    """Mixin running the command's validator with the command's principal."""

    validator: CommandValidator

    async def _validate(self, command: Any) -> list:
        return await self.validator.validate(
            command, getattr(command, "principal", None)
        )


# ═══════════════════════════════════════════════════════════════
# CREDENTIAL HANDLERS
# ═══════════════════════════════════════════════════════════════


class RegisterHandler(_ValidatingHandler, CommandHandler[CommandResult[UserRecord]]):
    """
    Create the user, then send the confirmation email.

    A duplicate email that slips past validation is caught by the
    credential store's conditional write and reported as DuplicateEmail.
    """

    def __init__(
        self,
        credentials: CredentialStorePort,
        email_sender: EmailSenderPort,
        sender_address: Optional[str] = None,
        default_confirmation_url: str = "/account/confirm",
    ):
        super().__init__()
        self.credentials = credentials
        self.email_sender = email_sender
        self.sender_address = sender_address
        self.default_confirmation_url = default_confirmation_url
        self.validator = RegisterValidator(credentials)

    async def handle(
        self, command: Register
    ) -> CommandResponse[CommandResult[UserRecord]]:
        failures = await self._validate(command)
        if failures:
            return _respond(command, CommandResult.invalid(failures))

        try:
            user = await self.credentials.create_user(
                command.email, command.password, user_name=command.user_name
            )
        except ConflictError as e:
            return _respond(command, _failure_from(e))

        token = await self.credentials.generate_confirmation_token(user)
        link = append_params(
            command.confirmation_url or self.default_confirmation_url,
            {"userId": user.id, "token": token, "returnUrl": command.return_url},
        )
        try:
            await send_notification(
                self.email_sender,
                EmailMessage(
                    to=[user.email],
                    subject="Confirm your email",
                    body_text=f"Confirm your account by visiting {link}",
                    from_email=self.sender_address,
                ),
            )
        except NotificationError:
            await self.credentials.delete_user(user.id)
            logger.warning(f"Rolled back registration of user {user.id}")
            return _respond(command, _notification_failed())

        logger.info(f"Registered user {user.id}")
        return _respond(
            command,
            CommandResult.valid(user),
            [UserRegistered(subject_id=user.id, email=user.email)],
        )


class ConfirmHandler(_ValidatingHandler, CommandHandler[CommandResult[str]]):
    """Redeem a confirmation token; the result is the return URL."""

    def __init__(self, credentials: CredentialStorePort):
        super().__init__()
        self.credentials = credentials
        self.validator = ConfirmValidator()

    async def handle(self, command: Confirm) -> CommandResponse[CommandResult[str]]:
        failures = await self._validate(command)
        if failures:
            return _respond(command, CommandResult.invalid(failures))

        if not await self.credentials.confirm_email(command.user_id, command.token):
            return _respond(
                command,
                CommandResult.failure(
                    "Token", ErrorCodes.INVALID_TOKEN.value, "Invalid token."
                ),
            )

        logger.info(f"Confirmed email of user {command.user_id}")
        return _respond(
            command,
            CommandResult.valid(command.return_url),
            [EmailConfirmed(subject_id=command.user_id)],
        )


class ForgotHandler(_ValidatingHandler, CommandHandler[CommandResult[None]]):
    """
    Send a password-reset link.

    Unknown addresses succeed without sending anything, so the result
    does not reveal which emails are registered.
    """

    def __init__(
        self,
        credentials: CredentialStorePort,
        email_sender: EmailSenderPort,
        sender_address: Optional[str] = None,
    ):
        super().__init__()
        self.credentials = credentials
        self.email_sender = email_sender
        self.sender_address = sender_address
        self.validator = ForgotValidator()

    async def handle(self, command: Forgot) -> CommandResponse[CommandResult[None]]:
        failures = await self._validate(command)
        if failures:
            return _respond(command, CommandResult.invalid(failures))

        user = await self.credentials.find_user_by_email(command.email)
        if user is None:
            logger.debug("Password reset requested for unknown email")
            return _respond(command, CommandResult.valid())

        token = await self.credentials.generate_password_reset_token(user)
        link = append_params(command.reset_url, {"userId": user.id, "token": token})
        try:
            await send_notification(
                self.email_sender,
                EmailMessage(
                    to=[user.email],
                    subject="Reset your password",
                    body_text=f"Reset your password by visiting {link}",
                    from_email=self.sender_address,
                ),
            )
        except NotificationError:
            return _respond(command, _notification_failed())

        logger.info(f"Sent password reset link to user {user.id}")
        return _respond(command, CommandResult.valid())


class ResetHandler(_ValidatingHandler, CommandHandler[CommandResult[str]]):
    def __init__(self, credentials: CredentialStorePort):
        super().__init__()
        self.credentials = credentials
        self.validator = ResetValidator()

    async def handle(self, command: Reset) -> CommandResponse[CommandResult[str]]:
        failures = await self._validate(command)
        if failures:
            return _respond(command, CommandResult.invalid(failures))

        if not await self.credentials.reset_password(
            command.user_id, command.token, command.password
        ):
            return _respond(
                command,
                CommandResult.failure(
                    "Token", ErrorCodes.INVALID_TOKEN.value, "Invalid token."
                ),
            )

        logger.info(f"Reset password of user {command.user_id}")
        return _respond(
            command,
            CommandResult.valid(command.return_url),
            [PasswordReset(subject_id=command.user_id)],
        )


class LoginHandler(_ValidatingHandler, CommandHandler[CommandResult[SignInResult]]):
    """
    Password sign-in.

    Opens a login session under ``command.session_id``. Users with
    two-factor enabled get a session that is pending the second factor
    and does not count as authenticated.
    """

    def __init__(
        self,
        credentials: CredentialStorePort,
        sessions: LoginSessionStorePort,
    ):
        super().__init__()
        self.credentials = credentials
        self.sessions = sessions
        self.validator = LoginValidator()

    async def handle(
        self, command: Login
    ) -> CommandResponse[CommandResult[SignInResult]]:
        failures = await self._validate(command)
        if failures:
            return _respond(command, CommandResult.invalid(failures))

        user = await self.credentials.find_user_by_email(command.email)
        if user is None or not await self.credentials.verify_password(
            user, command.password
        ):
            logger.warning("Sign-in rejected: invalid credentials")
            return _respond(
                command,
                CommandResult.failure(
                    "Email",
                    ErrorCodes.INVALID_CREDENTIALS.value,
                    "Invalid email or password.",
                ),
            )

        if not user.email_confirmed:
            return _respond(
                command,
                CommandResult.failure(
                    "Email",
                    ErrorCodes.EMAIL_NOT_CONFIRMED.value,
                    "Email has not been confirmed.",
                ),
            )

        session, events = LoginSession.sign_in(
            command.session_id, user.id, two_factor_pending=user.two_factor_enabled
        )
        await self.sessions.save(session)
        logger.info(
            f"User {user.id} signed in"
            + (" (two-factor pending)" if session.is_two_factor_pending else "")
        )
        return _respond(
            command,
            CommandResult.valid(
                SignInResult(
                    succeeded=session.is_authenticated,
                    user_id=user.id,
                    session_id=session.id,
                    requires_two_factor=session.is_two_factor_pending,
                )
            ),
            events,
        )


class GetTwoFactorProvidersHandler(
    QueryHandler[CommandResult[TwoFactorProvidersResult]]
):
    """Providers for the user of the login waiting for a second factor."""

    def __init__(
        self,
        credentials: CredentialStorePort,
        sessions: LoginSessionStorePort,
    ):
        super().__init__()
        self.credentials = credentials
        self.sessions = sessions

    async def handle(
        self, query: GetTwoFactorProviders
    ) -> QueryResponse[CommandResult[TwoFactorProvidersResult]]:
        session = await self.sessions.get(query.session_id) if query.session_id else None
        user = (
            await self.credentials.find_user_by_id(session.subject_id)
            if session is not None and session.is_two_factor_pending
            else None
        )
        if user is None:
            return QueryResponse(
                result=CommandResult.failure(
                    "SessionId",
                    ErrorCodes.NO_LOGIN_IN_PROGRESS.value,
                    "No login is in progress.",
                )
            )

        providers = await self.credentials.get_two_factor_providers(user)
        return QueryResponse(
            result=CommandResult.valid(TwoFactorProvidersResult(providers=providers))
        )


# ═══════════════════════════════════════════════════════════════
# ACCOUNT HANDLERS
# ═══════════════════════════════════════════════════════════════


class CreateAccountHandler(_ValidatingHandler, CommandHandler[CommandResult[Account]]):
    def __init__(self, accounts: AccountRegistry):
        super().__init__()
        self.accounts = accounts
        self.validator = CreateAccountValidator(accounts)

    async def handle(
        self, command: CreateAccount
    ) -> CommandResponse[CommandResult[Account]]:
        failures = await self._validate(command)
        if failures:
            return _respond(command, CommandResult.invalid(failures))

        try:
            modification = await self.accounts.create_account(
                command.name, command.principal.user_id
            )
        except ConflictError as e:
            return _respond(command, _failure_from(e))

        return _respond(
            command, CommandResult.valid(modification.account), modification.events
        )


class InviteHandler(_ValidatingHandler, CommandHandler[CommandResult[Invitation]]):
    """
    Store the invitation, then email the link (``invitation_url`` plus
    the invitation token) to the invitee exactly once.
    """

    def __init__(
        self,
        accounts: AccountRegistry,
        email_sender: EmailSenderPort,
        sender_address: Optional[str] = None,
    ):
        super().__init__()
        self.accounts = accounts
        self.email_sender = email_sender
        self.sender_address = sender_address
        self.validator = InviteValidator(accounts)

    async def handle(
        self, command: Invite
    ) -> CommandResponse[CommandResult[Invitation]]:
        failures = await self._validate(command)
        if failures:
            return _respond(command, CommandResult.invalid(failures))

        account = await self.accounts.find_account(command.account_name)
        try:
            modification = await self.accounts.invite_user(
                account.id, command.email, parse_role(command.role)
            )
        except (ConflictError, AuthorizationError) as e:
            return _respond(command, _failure_from(e))

        invitation = modification.invitation
        link = append_params(command.invitation_url, {"token": invitation.token})
        try:
            await send_notification(
                self.email_sender,
                EmailMessage(
                    to=[invitation.email],
                    subject=f"You have been invited to {account.name}",
                    body_text=(
                        f"You have been invited to join {account.name} as "
                        f"{invitation.role.value}. Accept the invitation by "
                        f"visiting {link}"
                    ),
                    from_email=self.sender_address,
                ),
            )
        except NotificationError:
            await self.accounts.revoke_invitation(invitation.id)
            return _respond(command, _notification_failed())

        return _respond(command, CommandResult.valid(invitation), modification.events)


class AcceptInvitationHandler(
    _ValidatingHandler, CommandHandler[CommandResult[AccountUser]]
):
    def __init__(self, accounts: AccountRegistry):
        super().__init__()
        self.accounts = accounts
        self.validator = AcceptInvitationValidator(accounts)

    async def handle(
        self, command: AcceptInvitation
    ) -> CommandResponse[CommandResult[AccountUser]]:
        failures = await self._validate(command)
        if failures:
            return _respond(command, CommandResult.invalid(failures))

        principal = command.principal
        try:
            modification = await self.accounts.accept_invitation(
                command.token, principal.user_id, email=principal.email
            )
        except (InvitationError, ConflictError) as e:
            return _respond(command, _failure_from(e))

        account = modification.account
        membership = AccountUser(
            account_id=account.id,
            user_id=principal.user_id,
            role=account.role_of(principal.user_id),
        )
        return _respond(command, CommandResult.valid(membership), modification.events)


# ═══════════════════════════════════════════════════════════════
# APPLICATION HANDLERS
# ═══════════════════════════════════════════════════════════════


def _provider_settings(
    command: CreateOidcProvider | EditOidcProvider,
) -> OidcProviderSettings:
    return OidcProviderSettings(
        name=command.name.strip(),
        authority_url=command.authority_url.strip(),
        client_id=command.client_id.strip(),
        client_secret=command.client_secret or "",
        response_type=command.response_type,
        scopes=tuple(command.scopes or ()),
        is_default=command.is_default,
        is_visible=command.is_visible,
    )


class CreateApplicationHandler(
    _ValidatingHandler, CommandHandler[CommandResult[Application]]
):
    def __init__(self, accounts: AccountRegistry, applications: ApplicationRegistry):
        super().__init__()
        self.applications = applications
        self.validator = CreateApplicationValidator(accounts)

    async def handle(
        self, command: CreateApplication
    ) -> CommandResponse[CommandResult[Application]]:
        failures = await self._validate(command)
        if failures:
            return _respond(command, CommandResult.invalid(failures))

        try:
            modification = await self.applications.create_application(
                account_id=command.account_id,
                caller_user_id=command.principal.user_id,
                display_name=command.display_name,
                auto_provision=command.auto_provision,
                enable_provision=command.enable_provision,
                redirect_uris=tuple(command.redirect_uris or ()),
            )
        except AuthorizationError as e:
            return _respond(command, _failure_from(e))

        return _respond(
            command, CommandResult.valid(modification.application), modification.events
        )


class CreateOidcProviderHandler(
    _ValidatingHandler, CommandHandler[CommandResult[OidcProviderConfig]]
):
    def __init__(self, applications: ApplicationRegistry):
        super().__init__()
        self.applications = applications
        self.validator = CreateOidcProviderValidator(applications)

    async def handle(
        self, command: CreateOidcProvider
    ) -> CommandResponse[CommandResult[OidcProviderConfig]]:
        failures = await self._validate(command)
        if failures:
            return _respond(command, CommandResult.invalid(failures))

        try:
            modification = await self.applications.create_oidc_provider(
                command.application_id,
                command.principal.user_id,
                _provider_settings(command),
            )
        except AuthorizationError as e:
            return _respond(command, _failure_from(e))

        return _respond(
            command, CommandResult.valid(modification.provider), modification.events
        )


class EditOidcProviderHandler(
    _ValidatingHandler, CommandHandler[CommandResult[OidcProviderConfig]]
):
    def __init__(self, applications: ApplicationRegistry):
        super().__init__()
        self.applications = applications
        self.validator = EditOidcProviderValidator(applications)

    async def handle(
        self, command: EditOidcProvider
    ) -> CommandResponse[CommandResult[OidcProviderConfig]]:
        failures = await self._validate(command)
        if failures:
            return _respond(command, CommandResult.invalid(failures))

        try:
            modification = await self.applications.edit_oidc_provider(
                command.id, command.principal.user_id, _provider_settings(command)
            )
        except AuthorizationError as e:
            return _respond(command, _failure_from(e))

        return _respond(
            command, CommandResult.valid(modification.provider), modification.events
        )


# ═══════════════════════════════════════════════════════════════
# PROTOCOL HANDLERS
# ═══════════════════════════════════════════════════════════════


class AuthorizeHandler(CommandHandler[AuthorizeResult]):
    def __init__(self, engine: AuthorizationProtocolEngine):
        super().__init__()
        self.engine = engine

    async def handle(self, command: Authorize) -> CommandResponse[AuthorizeResult]:
        result = await self.engine.authorize(command)
        return _respond(command, result, result.events)


class ExchangeHandler(CommandHandler[ExchangeResult]):
    def __init__(self, engine: AuthorizationProtocolEngine):
        super().__init__()
        self.engine = engine

    async def handle(self, command: Exchange) -> CommandResponse[ExchangeResult]:
        result = await self.engine.exchange(command)
        return _respond(command, result, result.events)


class LogoutHandler(CommandHandler[LogoutResult]):
    """Handle logout."""

    def __init__(self, engine: AuthorizationProtocolEngine):
        super().__init__()
        self.engine = engine

    async def handle(self, command: Logout) -> CommandResponse[LogoutResult]:
        result = await self.engine.logout(command)
        return _respond(command, result, result.events)
