"""
Command validators.

One validator per mutating command. ``validate`` returns an ordered list
of ValidationFailure; an empty list means the command may be applied.

Per field, a missing value is reported first (``NotEmpty``), then a
malformed one. Checks that need a registry lookup run only for fields
that passed the field checks. Validators never mutate anything.
"""

from typing import Any, Iterable, Optional
from urllib.parse import urlparse

from pydantic import EmailStr, TypeAdapter, ValidationError as PydanticValidationError

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
)
from gomsle.application.registries import AccountRegistry, ApplicationRegistry
from gomsle.domain.errors import ErrorCodes
from gomsle.domain.value_objects import (
    AccountRole,
    ValidationFailure,
    is_allowed_response_type,
)
from gomsle.identity import Identity
from gomsle.infrastructure.ports.credentials import CredentialStorePort

_email_adapter = TypeAdapter(EmailStr)


# ═══════════════════════════════════════════════════════════════
# FIELD RULES
# ═══════════════════════════════════════════════════════════════


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def is_valid_email(value: str) -> bool:
    try:
        _email_adapter.validate_python(value.strip())
    except PydanticValidationError:
        return False
    return True


def is_absolute_uri(value: str) -> bool:
    parsed = urlparse(value.strip())
    return bool(parsed.scheme) and bool(parsed.netloc)


def parse_role(value: Optional[str]) -> Optional[AccountRole]:
    if value is None:
        return None
    for role in AccountRole:
        if role.value.casefold() == str(value).strip().casefold():
            return role
    return None


class Failures(list):
    """Ordered failure list with per-rule helpers that report the outcome."""

    def add(self, field: str, code: ErrorCodes, message: str) -> None:
        self.append(ValidationFailure(field=field, code=code.value, message=message))

    def not_empty(self, field: str, value: Any) -> bool:
        if is_blank(value):
            self.add(field, ErrorCodes.NOT_EMPTY, f"'{field}' must not be empty.")
            return False
        return True

    def email(self, field: str, value: Any) -> bool:
        if not self.not_empty(field, value):
            return False
        if not is_valid_email(value):
            self.add(
                field, ErrorCodes.INVALID_EMAIL, f"'{field}' is not a valid email address."
            )
            return False
        return True

    def uri(self, field: str, value: Any) -> bool:
        if not self.not_empty(field, value):
            return False
        if not is_absolute_uri(value):
            self.add(field, ErrorCodes.INVALID_URI, f"'{field}' must be an absolute URI.")
            return False
        return True

    def optional_uri(self, field: str, value: Any) -> bool:
        if is_blank(value):
            return True
        return self.uri(field, value)

    def uris(self, field: str, values: Iterable[str]) -> bool:
        ok = True
        for value in values or ():
            if is_blank(value) or not is_absolute_uri(value):
                self.add(
                    field, ErrorCodes.INVALID_URI, f"'{value}' is not an absolute URI."
                )
                ok = False
        return ok

    def authenticated(self, principal: Optional[Identity]) -> bool:
        if principal is None or not principal.is_authenticated:
            self.add(
                "Principal", ErrorCodes.NOT_AUTHORIZED, "An authenticated user is required."
            )
            return False
        return True

    def not_authorized(self, field: str) -> None:
        self.add(field, ErrorCodes.NOT_AUTHORIZED, "You are not authorized.")


class CommandValidator:
    """Base class; subclasses implement ``validate``."""

    async def validate(
        self, command: Any, principal: Optional[Identity] = None
    ) -> list[ValidationFailure]:
        raise NotImplementedError


# ═══════════════════════════════════════════════════════════════
# CREDENTIAL COMMANDS
# ═══════════════════════════════════════════════════════════════


class RegisterValidator(CommandValidator):
    def __init__(self, credentials: CredentialStorePort):
        self.credentials = credentials

    async def validate(
        self, command: Register, principal: Optional[Identity] = None
    ) -> list[ValidationFailure]:
        failures = Failures()
        email_ok = failures.email("Email", command.email)
        failures.not_empty("Password", command.password)
        failures.optional_uri("ReturnUrl", command.return_url)
        failures.optional_uri("ConfirmationUrl", command.confirmation_url)

        if email_ok and await self.credentials.find_user_by_email(command.email):
            failures.add(
                "Email", ErrorCodes.DUPLICATE_EMAIL, "Email is already registered."
            )
        return list(failures)


class ConfirmValidator(CommandValidator):
    async def validate(
        self, command: Confirm, principal: Optional[Identity] = None
    ) -> list[ValidationFailure]:
        failures = Failures()
        failures.not_empty("UserId", command.user_id)
        failures.not_empty("Token", command.token)
        failures.optional_uri("ReturnUrl", command.return_url)
        return list(failures)


class ForgotValidator(CommandValidator):
    async def validate(
        self, command: Forgot, principal: Optional[Identity] = None
    ) -> list[ValidationFailure]:
        failures = Failures()
        failures.email("Email", command.email)
        failures.uri("ResetUrl", command.reset_url)
        return list(failures)


class ResetValidator(CommandValidator):
    async def validate(
        self, command: Reset, principal: Optional[Identity] = None
    ) -> list[ValidationFailure]:
        failures = Failures()
        failures.not_empty("UserId", command.user_id)
        failures.not_empty("Token", command.token)
        failures.not_empty("Password", command.password)
        failures.optional_uri("ReturnUrl", command.return_url)
        return list(failures)


class LoginValidator(CommandValidator):
    async def validate(
        self, command: Login, principal: Optional[Identity] = None
    ) -> list[ValidationFailure]:
        failures = Failures()
        failures.email("Email", command.email)
        failures.not_empty("Password", command.password)
        failures.not_empty("SessionId", command.session_id)
        return list(failures)


# ═══════════════════════════════════════════════════════════════
# ACCOUNT COMMANDS
# ═══════════════════════════════════════════════════════════════


class CreateAccountValidator(CommandValidator):
    def __init__(self, accounts: AccountRegistry):
        self.accounts = accounts

    async def validate(
        self, command: CreateAccount, principal: Optional[Identity] = None
    ) -> list[ValidationFailure]:
        failures = Failures()
        name_ok = failures.not_empty("Name", command.name)
        if not failures.authenticated(principal):
            return list(failures)

        if name_ok and await self.accounts.find_account(command.name):
            failures.add(
                "Name", ErrorCodes.DUPLICATE_NAME, "Account name is already taken."
            )
        return list(failures)


class InviteValidator(CommandValidator):
    """
    Invite rules: the account must exist, the caller must be Administrator
    or above on it, and nobody can be invited as Owner.
    """

    def __init__(self, accounts: AccountRegistry):
        self.accounts = accounts

    async def validate(
        self, command: Invite, principal: Optional[Identity] = None
    ) -> list[ValidationFailure]:
        failures = Failures()
        name_ok = failures.not_empty("AccountName", command.account_name)
        failures.email("Email", command.email)
        failures.uri("InvitationUrl", command.invitation_url)

        if failures.not_empty("Role", command.role):
            role = parse_role(command.role)
            if role is None:
                failures.add(
                    "Role", ErrorCodes.INVALID_ROLE, f"'{command.role}' is not a role."
                )
            elif role == AccountRole.OWNER:
                failures.add(
                    "Role",
                    ErrorCodes.ONLY_ONE_OWNER,
                    "An account can only have one owner.",
                )

        if not name_ok:
            return list(failures)

        account = await self.accounts.find_account(command.account_name)
        if account is None:
            failures.add(
                "AccountName", ErrorCodes.ACCOUNT_NOT_FOUND, "Account does not exist."
            )
        elif principal is None or not await self.accounts.authorize(
            account.id, principal.user_id, AccountRole.ADMINISTRATOR
        ):
            failures.not_authorized("AccountName")
        return list(failures)


class AcceptInvitationValidator(CommandValidator):
    def __init__(self, accounts: AccountRegistry):
        self.accounts = accounts

    async def validate(
        self, command: AcceptInvitation, principal: Optional[Identity] = None
    ) -> list[ValidationFailure]:
        failures = Failures()
        token_ok = failures.not_empty("Token", command.token)
        if not failures.authenticated(principal) or not token_ok:
            return list(failures)

        invitation = await self.accounts.find_invitation(command.token)
        if invitation is None:
            failures.add(
                "Token", ErrorCodes.INVITATION_NOT_FOUND, "Invitation does not exist."
            )
        elif invitation.is_expired():
            failures.add(
                "Token", ErrorCodes.INVITATION_EXPIRED, "Invitation has expired."
            )
        return list(failures)


# ═══════════════════════════════════════════════════════════════
# APPLICATION COMMANDS
# ═══════════════════════════════════════════════════════════════


class CreateApplicationValidator(CommandValidator):
    def __init__(self, accounts: AccountRegistry):
        self.accounts = accounts

    async def validate(
        self, command: CreateApplication, principal: Optional[Identity] = None
    ) -> list[ValidationFailure]:
        failures = Failures()
        account_ok = failures.not_empty("AccountId", command.account_id)
        failures.not_empty("DisplayName", command.display_name)
        failures.not_empty("AutoProvision", command.auto_provision)
        failures.not_empty("EnableProvision", command.enable_provision)
        failures.uris("RedirectUris", command.redirect_uris)

        if not account_ok:
            return list(failures)

        if await self.accounts.get_account(command.account_id) is None:
            failures.add(
                "AccountId", ErrorCodes.ACCOUNT_NOT_FOUND, "Account does not exist."
            )
        elif principal is None or not await self.accounts.authorize(
            command.account_id, principal.user_id, AccountRole.ADMINISTRATOR
        ):
            failures.not_authorized("AccountId")
        return list(failures)


def _provider_field_failures(
    command: CreateOidcProvider | EditOidcProvider,
) -> Failures:
    failures = Failures()
    failures.not_empty("Name", command.name)
    failures.uri("AuthorityUrl", command.authority_url)
    failures.not_empty("ClientId", command.client_id)
    if failures.not_empty("ResponseType", command.response_type):
        if not is_allowed_response_type(command.response_type):
            failures.add(
                "ResponseType",
                ErrorCodes.RESPONSE_TYPE_IS_INVALID,
                f"'{command.response_type}' is not a supported response type.",
            )
    failures.not_empty("IsDefault", command.is_default)
    failures.not_empty("IsVisible", command.is_visible)
    return failures


class CreateOidcProviderValidator(CommandValidator):
    def __init__(self, applications: ApplicationRegistry):
        self.applications = applications

    async def validate(
        self, command: CreateOidcProvider, principal: Optional[Identity] = None
    ) -> list[ValidationFailure]:
        failures = Failures()
        application_ok = failures.not_empty("ApplicationId", command.application_id)
        failures.extend(_provider_field_failures(command))

        if not application_ok:
            return list(failures)

        if await self.applications.get_application(command.application_id) is None:
            failures.add(
                "ApplicationId",
                ErrorCodes.APPLICATION_NOT_FOUND,
                "Application does not exist.",
            )
        elif principal is None or not await self.applications.can_manage_application(
            command.application_id, principal.user_id
        ):
            failures.not_authorized("ApplicationId")
        return list(failures)


class EditOidcProviderValidator(CommandValidator):
    """
    Same rules as creation. Unknown and foreign provider ids both fail
    with NotAuthorized on ``Id``.
    """

    def __init__(self, applications: ApplicationRegistry):
        self.applications = applications

    async def validate(
        self, command: EditOidcProvider, principal: Optional[Identity] = None
    ) -> list[ValidationFailure]:
        failures = Failures()
        id_ok = failures.not_empty("Id", command.id)
        failures.extend(_provider_field_failures(command))

        if id_ok and (
            principal is None
            or not await self.applications.can_manage_provider(
                command.id, principal.user_id
            )
        ):
            failures.not_authorized("Id")
        return list(failures)
