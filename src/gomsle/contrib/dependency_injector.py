"""
Dependency Injector integration for gomsle.

Provides an IoC Container wiring stores, registries, the protocol engine
and every command handler. Host applications can extend this container
or use it directly.

Usage:
    from gomsle.contrib.dependency_injector import GomsleContainer

    class AppContainer(GomsleContainer):
        # Replace in-memory stores with production adapters
        account_repository = providers.Singleton(SqlAccountRepository, ...)

    container = AppContainer()
    container.settings.override(providers.Object(GomsleSettings(...)))
    result = await container.dispatcher().send(Register(...))
"""

from datetime import timedelta

from dependency_injector import containers, providers

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
from gomsle.application.dispatcher import CommandDispatcher
from gomsle.application.handlers import (
    RegisterHandler,
    ConfirmHandler,
    ForgotHandler,
    ResetHandler,
    LoginHandler,
    GetTwoFactorProvidersHandler,
    CreateAccountHandler,
    InviteHandler,
    AcceptInvitationHandler,
    CreateApplicationHandler,
    CreateOidcProviderHandler,
    EditOidcProviderHandler,
    AuthorizeHandler,
    ExchangeHandler,
    LogoutHandler,
)
from gomsle.application.protocol import AuthorizationProtocolEngine
from gomsle.application.queries import GetTwoFactorProviders
from gomsle.application.registries import AccountRegistry, ApplicationRegistry
from gomsle.config import GomsleSettings
from gomsle.infrastructure.adapters.communication import (
    AsyncSMTPEmailSender,
    ConsoleEmailSender,
)


class GomsleContainer(containers.DeclarativeContainer):
    """
    Container with pre-configured identity and authorization services.

    Settings default to ``GomsleSettings.from_env()``. Every store is
    in-memory by default and can be overridden.

    The email backend is chosen by ``settings.email_backend``:
    ``console`` (default) or ``smtp`` (uses ``settings.smtp``).
    """

    settings = providers.Singleton(GomsleSettings.from_env)

    # ═══════════════════════════════════════════════════════════════
    # DEFAULT ADAPTERS (can be overridden)
    # ═══════════════════════════════════════════════════════════════

    credential_store = providers.Singleton(
        "gomsle.infrastructure.adapters.credentials.InMemoryCredentialStore"
    )

    account_repository = providers.Singleton(
        "gomsle.infrastructure.adapters.repositories.InMemoryAccountRepository"
    )

    application_repository = providers.Singleton(
        "gomsle.infrastructure.adapters.repositories.InMemoryApplicationRepository"
    )

    authorization_request_store = providers.Singleton(
        "gomsle.infrastructure.adapters.grants.InMemoryAuthorizationRequestStore"
    )

    grant_store = providers.Singleton(
        "gomsle.infrastructure.adapters.grants.InMemoryGrantStore"
    )

    login_session_store = providers.Singleton(
        "gomsle.infrastructure.adapters.grants.InMemoryLoginSessionStore"
    )

    token_signer = providers.Singleton(
        "gomsle.infrastructure.adapters.tokens.JoseTokenSigner",
        key=settings.provided.signing_key,
        issuer=settings.provided.issuer,
        algorithm=settings.provided.signing_algorithm,
    )

    email_sender = providers.Selector(
        settings.provided.email_backend,
        console=providers.Singleton(ConsoleEmailSender),
        smtp=providers.Singleton(
            AsyncSMTPEmailSender.from_settings,
            settings=settings.provided.smtp,
            default_from=settings.provided.email_from,
        ),
    )

    # ═══════════════════════════════════════════════════════════════
    # REGISTRIES AND PROTOCOL ENGINE
    # ═══════════════════════════════════════════════════════════════

    invitation_lifetime = providers.Factory(
        timedelta, seconds=settings.provided.invitation_lifetime
    )

    account_registry = providers.Singleton(
        AccountRegistry,
        accounts=account_repository,
        invitation_lifetime=invitation_lifetime,
    )

    application_registry = providers.Singleton(
        ApplicationRegistry,
        applications=application_repository,
        account_registry=account_registry,
    )

    protocol_engine = providers.Singleton(
        AuthorizationProtocolEngine,
        settings=settings,
        accounts=account_registry,
        applications=application_registry,
        credentials=credential_store,
        requests=authorization_request_store,
        grants=grant_store,
        sessions=login_session_store,
        signer=token_signer,
    )

    # ═══════════════════════════════════════════════════════════════
    # CREDENTIAL HANDLERS
    # ═══════════════════════════════════════════════════════════════

    register_handler = providers.Factory(
        RegisterHandler,
        credentials=credential_store,
        email_sender=email_sender,
        sender_address=settings.provided.email_from,
    )

    confirm_handler = providers.Factory(
        ConfirmHandler,
        credentials=credential_store,
    )

    forgot_handler = providers.Factory(
        ForgotHandler,
        credentials=credential_store,
        email_sender=email_sender,
        sender_address=settings.provided.email_from,
    )

    reset_handler = providers.Factory(
        ResetHandler,
        credentials=credential_store,
    )

    login_handler = providers.Factory(
        LoginHandler,
        credentials=credential_store,
        sessions=login_session_store,
    )

    get_two_factor_providers_handler = providers.Factory(
        GetTwoFactorProvidersHandler,
        credentials=credential_store,
        sessions=login_session_store,
    )

    # ═══════════════════════════════════════════════════════════════
    # ACCOUNT AND APPLICATION HANDLERS
    # ═══════════════════════════════════════════════════════════════

    create_account_handler = providers.Factory(
        CreateAccountHandler,
        accounts=account_registry,
    )

    invite_handler = providers.Factory(
        InviteHandler,
        accounts=account_registry,
        email_sender=email_sender,
        sender_address=settings.provided.email_from,
    )

    accept_invitation_handler = providers.Factory(
        AcceptInvitationHandler,
        accounts=account_registry,
    )

    create_application_handler = providers.Factory(
        CreateApplicationHandler,
        accounts=account_registry,
        applications=application_registry,
    )

    create_oidc_provider_handler = providers.Factory(
        CreateOidcProviderHandler,
        applications=application_registry,
    )

    edit_oidc_provider_handler = providers.Factory(
        EditOidcProviderHandler,
        applications=application_registry,
    )

    # ═══════════════════════════════════════════════════════════════
    # PROTOCOL HANDLERS
    # ═══════════════════════════════════════════════════════════════

    authorize_handler = providers.Factory(AuthorizeHandler, engine=protocol_engine)

    exchange_handler = providers.Factory(ExchangeHandler, engine=protocol_engine)

    logout_handler = providers.Factory(LogoutHandler, engine=protocol_engine)

    # ═══════════════════════════════════════════════════════════════
    # HANDLER REGISTRATION
    # ═══════════════════════════════════════════════════════════════

    command_handlers = providers.Dict(
        {
            Register: register_handler,
            Confirm: confirm_handler,
            Forgot: forgot_handler,
            Reset: reset_handler,
            Login: login_handler,
            CreateAccount: create_account_handler,
            Invite: invite_handler,
            AcceptInvitation: accept_invitation_handler,
            CreateApplication: create_application_handler,
            CreateOidcProvider: create_oidc_provider_handler,
            EditOidcProvider: edit_oidc_provider_handler,
            Authorize: authorize_handler,
            Exchange: exchange_handler,
            Logout: logout_handler,
        }
    )

    query_handlers = providers.Dict(
        {
            GetTwoFactorProviders: get_two_factor_providers_handler,
        }
    )

    # Receives the events of every dispatched command; None disables publishing
    event_publisher = providers.Object(None)

    dispatcher = providers.Singleton(
        CommandDispatcher.from_handlers,
        command_handlers,
        query_handlers,
        event_publisher=event_publisher,
    )
