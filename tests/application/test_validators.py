"""
Tests for Command Validators.
"""

import pytest

from gomsle.application.commands import (
    AcceptInvitation,
    CreateAccount,
    CreateApplication,
    CreateOidcProvider,
    EditOidcProvider,
    Forgot,
    Invite,
    Login,
    Register,
)
from gomsle.application.validators import (
    AcceptInvitationValidator,
    CreateAccountValidator,
    CreateApplicationValidator,
    CreateOidcProviderValidator,
    EditOidcProviderValidator,
    ForgotValidator,
    InviteValidator,
    LoginValidator,
    RegisterValidator,
    parse_role,
)
from gomsle.domain.value_objects import AccountRole


def _codes(failures):
    return [(f.field, f.code) for f in failures]


def _provider_command(cls, **overrides):
    values = dict(
        name="Azure AD",
        authority_url="https://login.microsoftonline.com/common",
        client_id="azure-client",
        client_secret="azure-secret",
        response_type="code",
        scopes=["profile"],
        is_default=False,
        is_visible=True,
    )
    values.update(overrides)
    return cls(**values)


def test_parse_role():
    assert parse_role("administrator") == AccountRole.ADMINISTRATOR
    assert parse_role(" Member ") == AccountRole.MEMBER
    assert parse_role("Emperor") is None
    assert parse_role(None) is None


# -----------------------------------------------------------------------------
# CREDENTIALS
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_register_empty_email(credentials):
    failures = await RegisterValidator(credentials).validate(
        Register(email="", password="Passw0rd!")
    )

    assert _codes(failures) == [("Email", "NotEmpty")]


@pytest.mark.asyncio
async def test_register_invalid_email(credentials):
    failures = await RegisterValidator(credentials).validate(
        Register(email="not-an-email", password="Passw0rd!")
    )

    assert _codes(failures) == [("Email", "InvalidEmail")]


@pytest.mark.asyncio
async def test_register_duplicate_email(credentials, user):
    failures = await RegisterValidator(credentials).validate(
        Register(email="JANE@gomsle.com", password="Passw0rd!")
    )

    assert _codes(failures) == [("Email", "DuplicateEmail")]


@pytest.mark.asyncio
async def test_register_relative_return_url(credentials):
    failures = await RegisterValidator(credentials).validate(
        Register(email="new@gomsle.com", password="Passw0rd!", return_url="/home")
    )

    assert _codes(failures) == [("ReturnUrl", "InvalidUri")]


@pytest.mark.asyncio
async def test_forgot_requires_reset_url():
    failures = await ForgotValidator().validate(Forgot(email="jane@gomsle.com"))

    assert _codes(failures) == [("ResetUrl", "NotEmpty")]


@pytest.mark.asyncio
async def test_login_requires_session_id():
    failures = await LoginValidator().validate(
        Login(email="jane@gomsle.com", password="x")
    )

    assert _codes(failures) == [("SessionId", "NotEmpty")]


# -----------------------------------------------------------------------------
# ACCOUNTS
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_account_requires_principal(accounts, anonymous_identity):
    failures = await CreateAccountValidator(accounts).validate(
        CreateAccount(name="Contoso"), anonymous_identity
    )

    assert _codes(failures) == [("Principal", "NotAuthorized")]


@pytest.mark.asyncio
async def test_create_account_duplicate_name(accounts, account, owner):
    failures = await CreateAccountValidator(accounts).validate(
        CreateAccount(name="microsoft"), owner
    )

    assert _codes(failures) == [("Name", "DuplicateName")]


@pytest.mark.asyncio
async def test_invite_as_owner_fails_only_one_owner(accounts, account, owner):
    command = Invite(
        account_name="Microsoft",
        email="test@gomsle.com",
        role="Owner",
        invitation_url="https://app.gomsle.com/accept",
    )

    failures = await InviteValidator(accounts).validate(command, owner)

    assert _codes(failures) == [("Role", "OnlyOneOwner")]


@pytest.mark.asyncio
async def test_invite_unknown_role(accounts, account, owner):
    command = Invite(
        account_name="Microsoft",
        email="test@gomsle.com",
        role="Emperor",
        invitation_url="https://app.gomsle.com/accept",
    )

    failures = await InviteValidator(accounts).validate(command, owner)

    assert _codes(failures) == [("Role", "InvalidRole")]


@pytest.mark.asyncio
async def test_invite_unknown_account(accounts, owner):
    command = Invite(
        account_name="Contoso",
        email="test@gomsle.com",
        invitation_url="https://app.gomsle.com/accept",
    )

    failures = await InviteValidator(accounts).validate(command, owner)

    assert _codes(failures) == [("AccountName", "AccountNotFound")]


@pytest.mark.asyncio
async def test_invite_by_member_is_not_authorized(accounts, account, outsider):
    await accounts.add_member(account.id, outsider.user_id, AccountRole.MEMBER)
    command = Invite(
        account_name="Microsoft",
        email="test@gomsle.com",
        role="Member",
        invitation_url="https://app.gomsle.com/accept",
    )

    failures = await InviteValidator(accounts).validate(command, outsider)

    assert _codes(failures) == [("AccountName", "NotAuthorized")]


@pytest.mark.asyncio
async def test_invite_collects_every_field_failure(accounts, owner):
    failures = await InviteValidator(accounts).validate(
        Invite(account_name="", email="", role="", invitation_url="relative"), owner
    )

    assert _codes(failures) == [
        ("AccountName", "NotEmpty"),
        ("Email", "NotEmpty"),
        ("InvitationUrl", "InvalidUri"),
        ("Role", "NotEmpty"),
    ]


@pytest.mark.asyncio
async def test_accept_unknown_invitation(accounts, outsider):
    failures = await AcceptInvitationValidator(accounts).validate(
        AcceptInvitation(token="missing"), outsider
    )

    assert _codes(failures) == [("Token", "InvitationNotFound")]


# -----------------------------------------------------------------------------
# APPLICATIONS
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_application_rules(accounts, account, owner):
    command = CreateApplication(
        account_id=account.id,
        display_name="",
        auto_provision=None,
        enable_provision=False,
        redirect_uris=["https://ok/cb", "not a uri"],
    )

    failures = await CreateApplicationValidator(accounts).validate(command, owner)

    assert _codes(failures) == [
        ("DisplayName", "NotEmpty"),
        ("AutoProvision", "NotEmpty"),
        ("RedirectUris", "InvalidUri"),
    ]


@pytest.mark.asyncio
async def test_create_application_unknown_account(accounts, owner):
    command = CreateApplication(
        account_id="missing",
        display_name="Portal",
        auto_provision=False,
        enable_provision=False,
    )

    failures = await CreateApplicationValidator(accounts).validate(command, owner)

    assert _codes(failures) == [("AccountId", "AccountNotFound")]


@pytest.mark.asyncio
async def test_create_provider_invalid_authority_url(applications, application, owner):
    command = _provider_command(
        CreateOidcProvider, application_id=application.id, authority_url="nope"
    )

    failures = await CreateOidcProviderValidator(applications).validate(command, owner)

    assert _codes(failures) == [("AuthorityUrl", "InvalidUri")]


@pytest.mark.asyncio
async def test_create_provider_invalid_response_type(applications, application, owner):
    command = _provider_command(
        CreateOidcProvider, application_id=application.id, response_type="magic"
    )

    failures = await CreateOidcProviderValidator(applications).validate(command, owner)

    assert _codes(failures) == [("ResponseType", "ResponseTypeIsInvalid")]


@pytest.mark.asyncio
async def test_create_provider_is_default_required(applications, application, owner):
    command = _provider_command(
        CreateOidcProvider, application_id=application.id, is_default=None
    )

    failures = await CreateOidcProviderValidator(applications).validate(command, owner)

    assert _codes(failures) == [("IsDefault", "NotEmpty")]


@pytest.mark.asyncio
async def test_create_provider_unknown_application(applications, owner):
    command = _provider_command(CreateOidcProvider, application_id="missing")

    failures = await CreateOidcProviderValidator(applications).validate(command, owner)

    assert _codes(failures) == [("ApplicationId", "ApplicationNotFound")]


@pytest.mark.asyncio
async def test_create_provider_by_outsider(applications, application, outsider):
    command = _provider_command(CreateOidcProvider, application_id=application.id)

    failures = await CreateOidcProviderValidator(applications).validate(
        command, outsider
    )

    assert _codes(failures) == [("ApplicationId", "NotAuthorized")]


@pytest.mark.asyncio
async def test_edit_unknown_provider_is_not_authorized(applications, owner):
    command = _provider_command(EditOidcProvider, id="does-not-exist")

    failures = await EditOidcProviderValidator(applications).validate(command, owner)

    assert _codes(failures) == [("Id", "NotAuthorized")]


@pytest.mark.asyncio
async def test_edit_foreign_provider_is_not_authorized(
    applications, application, outsider
):
    provider = (await applications.list_providers(application.id))[0]
    command = _provider_command(EditOidcProvider, id=provider.id)

    failures = await EditOidcProviderValidator(applications).validate(
        command, outsider
    )

    assert _codes(failures) == [("Id", "NotAuthorized")]


@pytest.mark.asyncio
async def test_edit_valid(applications, application, owner):
    provider = (await applications.list_providers(application.id))[0]
    command = _provider_command(EditOidcProvider, id=provider.id)

    assert await EditOidcProviderValidator(applications).validate(command, owner) == []
