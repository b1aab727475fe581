"""
Tests for AccountRegistry and ApplicationRegistry.
"""

import asyncio
from datetime import timedelta

import pytest

from gomsle.application.registries import AccountRegistry
from gomsle.domain.errors import (
    AuthorizationError,
    DuplicateNameError,
    InvitationError,
    OnlyOneOwnerError,
)
from gomsle.domain.events import DefaultProviderDemoted, OidcProviderCreated
from gomsle.domain.value_objects import AccountRole


# -----------------------------------------------------------------------------
# ACCOUNTS
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_account_duplicate_name(accounts, account, outsider):
    with pytest.raises(DuplicateNameError):
        await accounts.create_account("MICROSOFT", outsider.user_id)


@pytest.mark.asyncio
async def test_concurrent_create_account_single_winner(accounts):
    results = await asyncio.gather(
        accounts.create_account("Contoso", "u1"),
        accounts.create_account("contoso", "u2"),
        return_exceptions=True,
    )

    assert sum(1 for r in results if isinstance(r, DuplicateNameError)) == 1


@pytest.mark.asyncio
async def test_invite_user_as_owner_fails(accounts, account):
    with pytest.raises(OnlyOneOwnerError):
        await accounts.invite_user(account.id, "a@gomsle.com", AccountRole.OWNER)


@pytest.mark.asyncio
async def test_invite_user_unknown_account(accounts):
    with pytest.raises(AuthorizationError) as exc:
        await accounts.invite_user("missing", "a@gomsle.com", AccountRole.MEMBER)

    assert exc.value.code == "AccountNotFound"


@pytest.mark.asyncio
async def test_invitation_lifecycle(accounts, account, outsider):
    invitation = (
        await accounts.invite_user(
            account.id, "OUTSIDER@gomsle.com", AccountRole.ADMINISTRATOR
        )
    ).invitation

    mod = await accounts.accept_invitation(
        invitation.token, outsider.user_id, email=outsider.email
    )

    assert mod.account.role_of(outsider.user_id) == AccountRole.ADMINISTRATOR
    assert await accounts.authorize(
        account.id, outsider.user_id, AccountRole.ADMINISTRATOR
    )
    assert await accounts.find_invitation(invitation.token) is None


@pytest.mark.asyncio
async def test_accept_invitation_twice_fails(accounts, account, outsider):
    invitation = (
        await accounts.invite_user(account.id, outsider.email, AccountRole.MEMBER)
    ).invitation
    await accounts.accept_invitation(invitation.token, outsider.user_id)

    with pytest.raises(InvitationError):
        await accounts.accept_invitation(invitation.token, outsider.user_id)


@pytest.mark.asyncio
async def test_accept_invitation_for_other_email_keeps_it(accounts, account, outsider):
    invitation = (
        await accounts.invite_user(account.id, "someone@gomsle.com", AccountRole.MEMBER)
    ).invitation

    with pytest.raises(InvitationError):
        await accounts.accept_invitation(
            invitation.token, outsider.user_id, email=outsider.email
        )

    assert await accounts.find_invitation(invitation.token) is not None


@pytest.mark.asyncio
async def test_accept_expired_invitation(account_repository, owner, outsider):
    registry = AccountRegistry(
        account_repository, invitation_lifetime=timedelta(seconds=-1)
    )
    account = (await registry.create_account("Contoso", owner.user_id)).account
    invitation = (
        await registry.invite_user(account.id, outsider.email, AccountRole.MEMBER)
    ).invitation

    with pytest.raises(InvitationError) as exc:
        await registry.accept_invitation(invitation.token, outsider.user_id)

    assert exc.value.code == "InvitationExpired"


@pytest.mark.asyncio
async def test_owner_accepting_member_invitation_stays_owner(accounts, account, owner):
    invitation = (
        await accounts.invite_user(account.id, owner.email, AccountRole.MEMBER)
    ).invitation

    await accounts.accept_invitation(invitation.token, owner.user_id)

    membership = await accounts.membership(account.id, owner.user_id)
    assert membership.role == AccountRole.OWNER


@pytest.mark.asyncio
async def test_revoke_invitation(accounts, account):
    invitation = (
        await accounts.invite_user(account.id, "a@gomsle.com", AccountRole.MEMBER)
    ).invitation

    await accounts.revoke_invitation(invitation.id)

    assert await accounts.find_invitation(invitation.token) is None


@pytest.mark.asyncio
async def test_authorize_unknown_account(accounts, owner):
    assert not await accounts.authorize("missing", owner.user_id, AccountRole.MEMBER)


# -----------------------------------------------------------------------------
# APPLICATIONS AND PROVIDERS
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_application_requires_administrator(
    applications, account, outsider
):
    with pytest.raises(AuthorizationError) as exc:
        await applications.create_application(
            account_id=account.id,
            caller_user_id=outsider.user_id,
            display_name="Portal",
            auto_provision=False,
            enable_provision=False,
        )

    assert exc.value.field == "AccountId"


@pytest.mark.asyncio
async def test_create_application_by_administrator(
    applications, accounts, account, outsider
):
    await accounts.add_member(account.id, outsider.user_id, AccountRole.ADMINISTRATOR)

    mod = await applications.create_application(
        account_id=account.id,
        caller_user_id=outsider.user_id,
        display_name=" Portal ",
        auto_provision=True,
        enable_provision=True,
    )

    assert mod.application.display_name == "Portal"
    assert await applications.list_applications(account.id) == [mod.application]


@pytest.mark.asyncio
async def test_second_default_provider_demotes_first(
    applications, application, owner, make_provider_settings
):
    first = (await applications.list_providers(application.id))[0]

    mod = await applications.create_oidc_provider(
        application.id, owner.user_id, make_provider_settings(name="Okta")
    )

    assert first.is_default is False
    assert mod.provider.is_default is True
    assert [type(e) for e in mod.events] == [
        OidcProviderCreated,
        DefaultProviderDemoted,
    ]
    defaults = [
        p for p in await applications.list_providers(application.id) if p.is_default
    ]
    assert defaults == [mod.provider]


@pytest.mark.asyncio
async def test_edit_round_trip(applications, application, owner, make_provider_settings):
    provider = (await applications.list_providers(application.id))[0]
    new_settings = make_provider_settings(
        name="Okta",
        authority_url="https://okta.example.com",
        client_id="okta-client",
        response_type="code",
        scopes=("groups",),
        is_default=False,
        is_visible=False,
    )

    await applications.edit_oidc_provider(provider.id, owner.user_id, new_settings)

    stored = await applications.get_provider(provider.id)
    assert stored.id == provider.id
    assert stored.settings() == new_settings


@pytest.mark.asyncio
async def test_edit_unknown_and_foreign_look_the_same(
    applications, application, outsider, make_provider_settings
):
    provider = (await applications.list_providers(application.id))[0]

    with pytest.raises(AuthorizationError) as foreign:
        await applications.edit_oidc_provider(
            provider.id, outsider.user_id, make_provider_settings()
        )
    with pytest.raises(AuthorizationError) as unknown:
        await applications.edit_oidc_provider(
            "missing", outsider.user_id, make_provider_settings()
        )

    assert (foreign.value.field, foreign.value.code) == (
        unknown.value.field,
        unknown.value.code,
    )


@pytest.mark.asyncio
async def test_create_provider_unknown_application(
    applications, owner, make_provider_settings
):
    with pytest.raises(AuthorizationError) as exc:
        await applications.create_oidc_provider(
            "missing", owner.user_id, make_provider_settings()
        )

    assert exc.value.code == "ApplicationNotFound"
