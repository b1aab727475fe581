"""
Pytest configuration for gomsle tests.
"""

import pytest
from unittest.mock import AsyncMock
from argon2 import PasswordHasher

from gomsle.application.protocol import AuthorizationProtocolEngine
from gomsle.application.registries import AccountRegistry, ApplicationRegistry
from gomsle.config import GomsleSettings
from gomsle.domain.authorization import LoginSession
from gomsle.domain.value_objects import OidcProviderSettings
from gomsle.identity import ANONYMOUS, Principal
from gomsle.infrastructure.adapters.credentials import InMemoryCredentialStore
from gomsle.infrastructure.adapters.grants import (
    InMemoryAuthorizationRequestStore,
    InMemoryGrantStore,
    InMemoryLoginSessionStore,
)
from gomsle.infrastructure.adapters.repositories import (
    InMemoryAccountRepository,
    InMemoryApplicationRepository,
)
from gomsle.infrastructure.adapters.tokens import JoseTokenSigner

REDIRECT_URI = "https://app.gomsle.com/callback"


@pytest.fixture
def settings():
    return GomsleSettings(issuer="https://id.gomsle.com", signing_key="test-secret")


@pytest.fixture
def anonymous_identity():
    return ANONYMOUS


@pytest.fixture
def owner():
    return Principal(user_id="owner-1", email="owner@gomsle.com")


@pytest.fixture
def outsider():
    return Principal(user_id="outsider-1", email="outsider@gomsle.com")


# -----------------------------------------------------------------------------
# STORES
# -----------------------------------------------------------------------------


@pytest.fixture
def credentials():
    # Cheap parameters keep hashing fast in tests
    return InMemoryCredentialStore(
        password_hasher=PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)
    )


@pytest.fixture
def account_repository():
    return InMemoryAccountRepository()


@pytest.fixture
def application_repository():
    return InMemoryApplicationRepository()


@pytest.fixture
def request_store():
    return InMemoryAuthorizationRequestStore()


@pytest.fixture
def grant_store():
    return InMemoryGrantStore()


@pytest.fixture
def session_store():
    return InMemoryLoginSessionStore()


@pytest.fixture
def signer(settings):
    return JoseTokenSigner(key=settings.signing_key, issuer=settings.issuer)


@pytest.fixture
def email_sender():
    mock = AsyncMock()
    mock.send = AsyncMock(return_value=None)
    return mock


# -----------------------------------------------------------------------------
# SERVICES
# -----------------------------------------------------------------------------


@pytest.fixture
def accounts(account_repository):
    return AccountRegistry(account_repository)


@pytest.fixture
def applications(application_repository, accounts):
    return ApplicationRegistry(application_repository, accounts)


@pytest.fixture
def engine(
    settings,
    accounts,
    applications,
    credentials,
    request_store,
    grant_store,
    session_store,
    signer,
):
    return AuthorizationProtocolEngine(
        settings=settings,
        accounts=accounts,
        applications=applications,
        credentials=credentials,
        requests=request_store,
        grants=grant_store,
        sessions=session_store,
        signer=signer,
    )


# -----------------------------------------------------------------------------
# SEEDED STATE
# -----------------------------------------------------------------------------


def provider_settings(**overrides) -> OidcProviderSettings:
    values = dict(
        name="Azure AD",
        authority_url="https://login.microsoftonline.com/common",
        client_id="azure-client",
        client_secret="azure-secret",
        response_type="code id_token",
        scopes=("profile", "email"),
        is_default=True,
        is_visible=True,
    )
    values.update(overrides)
    return OidcProviderSettings(**values)


@pytest.fixture
def redirect_uri():
    return REDIRECT_URI


@pytest.fixture
def make_provider_settings():
    return provider_settings


@pytest.fixture
async def account(accounts, owner):
    return (await accounts.create_account("Microsoft", owner.user_id)).account


@pytest.fixture
async def application(applications, account, owner):
    application = (
        await applications.create_application(
            account_id=account.id,
            caller_user_id=owner.user_id,
            display_name="Portal",
            auto_provision=False,
            enable_provision=False,
            redirect_uris=(REDIRECT_URI,),
        )
    ).application
    await applications.create_oidc_provider(
        application.id, owner.user_id, provider_settings()
    )
    return application


@pytest.fixture
async def user(credentials):
    """A confirmed user that is not a member of any account."""
    user = await credentials.create_user("jane@gomsle.com", "Passw0rd!")
    user.email_confirmed = True
    return user


@pytest.fixture
async def signed_in(session_store, user):
    """Session id of an authenticated login session for ``user``."""
    session, _ = LoginSession.sign_in("session-1", user.id)
    await session_store.save(session)
    return session.id
