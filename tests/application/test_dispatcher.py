"""
Tests for CommandDispatcher.
"""

import pytest
from unittest.mock import AsyncMock

from gomsle.application.commands import Exchange, Logout
from gomsle.application.dispatcher import CommandDispatcher, HandlerNotFoundError
from gomsle.application.handlers import GetTwoFactorProvidersHandler, LogoutHandler
from gomsle.application.queries import GetTwoFactorProviders
from gomsle.domain.authorization import LoginSession
from gomsle.domain.events import UserSignedOut


@pytest.fixture
def dispatcher(engine, credentials, session_store):
    dispatcher = CommandDispatcher()
    dispatcher.register(Logout, LogoutHandler(engine))
    dispatcher.register(
        GetTwoFactorProviders,
        GetTwoFactorProvidersHandler(credentials, session_store),
    )
    return dispatcher


@pytest.mark.asyncio
async def test_send_returns_handler_result(dispatcher):
    result = await dispatcher.send(Logout(post_logout_redirect_uri="/bye"))

    assert result.success is True
    assert result.redirect_url == "/bye"


@pytest.mark.asyncio
async def test_dispatch_returns_events(dispatcher, signed_in):
    response = await dispatcher.dispatch(Logout(session_id=signed_in))

    assert isinstance(response.events[0], UserSignedOut)


@pytest.mark.asyncio
async def test_unregistered_message(dispatcher):
    with pytest.raises(HandlerNotFoundError):
        await dispatcher.send(Exchange(grant_type="refresh_token"))


@pytest.mark.asyncio
async def test_query_routed_to_query_handler(dispatcher, session_store, user):
    session, _ = LoginSession.sign_in("browser-1", user.id, two_factor_pending=True)
    await session_store.save(session)

    result = await dispatcher.query(GetTwoFactorProviders(session_id="browser-1"))

    assert result.is_valid
    assert isinstance(result.result.providers, list)


@pytest.mark.asyncio
async def test_events_published(engine, signed_in):
    publisher = AsyncMock()
    dispatcher = CommandDispatcher.from_handlers(
        {Logout: LogoutHandler(engine)}, event_publisher=publisher
    )

    await dispatcher.send(Logout(session_id=signed_in))

    publisher.assert_awaited_once()
    (events,), _ = publisher.call_args
    assert [type(e) for e in events] == [UserSignedOut]


@pytest.mark.asyncio
async def test_nothing_published_without_events(engine):
    publisher = AsyncMock()
    dispatcher = CommandDispatcher.from_handlers(
        {Logout: LogoutHandler(engine)}, event_publisher=publisher
    )

    await dispatcher.send(Logout())

    publisher.assert_not_awaited()
