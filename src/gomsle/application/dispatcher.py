"""
Command dispatch.

An explicit map from command/query type to handler. Registration is
done once at startup (see ``GomsleContainer.dispatcher``);
dispatch is a dictionary lookup.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from cqrs_ddd.core import CommandHandler, QueryHandler

logger = logging.getLogger("gomsle.application.dispatcher")

EventPublisher = Callable[[list], Awaitable[None]]


class HandlerNotFoundError(LookupError):
    """Raised when no handler is registered for a command or query type."""


class CommandDispatcher:
    """
    Routes commands and queries to their handlers.

    ``send``/``query`` return the handler's result; the full response
    (result plus domain events) is available through ``dispatch``.
    Events of every response are passed to ``event_publisher`` when set.

    Usage:
        dispatcher = CommandDispatcher()
        dispatcher.register(Invite, InviteHandler(accounts, email_sender))
        result = await dispatcher.send(Invite(account_name="Microsoft", ...))
    """

    def __init__(self, event_publisher: Optional[EventPublisher] = None):
        self._command_handlers: dict[type, CommandHandler] = {}
        self._query_handlers: dict[type, QueryHandler] = {}
        self.event_publisher = event_publisher

    def register(self, message_type: type, handler: Any) -> None:
        if isinstance(handler, QueryHandler):
            self._query_handlers[message_type] = handler
        else:
            self._command_handlers[message_type] = handler

    def register_all(self, handlers: dict[type, Any]) -> None:
        for message_type, handler in handlers.items():
            self.register(message_type, handler)

    @classmethod
    def from_handlers(
        cls,
        *handler_maps: dict[type, Any],
        event_publisher: Optional[EventPublisher] = None,
    ) -> "CommandDispatcher":
        dispatcher = cls(event_publisher=event_publisher)
        for handlers in handler_maps:
            dispatcher.register_all(handlers)
        return dispatcher

    def handler_for(self, message: Any) -> Any:
        message_type = type(message)
        handler = self._command_handlers.get(message_type) or self._query_handlers.get(
            message_type
        )
        if handler is None:
            raise HandlerNotFoundError(
                f"No handler registered for {message_type.__name__}"
            )
        return handler

    async def dispatch(self, message: Any) -> Any:
        """Run the handler for ``message`` and return its full response."""
        response = await self.handler_for(message).handle(message)
        events = list(getattr(response, "events", None) or [])
        if events:
            logger.debug(
                f"{type(message).__name__} produced "
                f"{', '.join(type(e).__name__ for e in events)}"
            )
            if self.event_publisher is not None:
                await self.event_publisher(events)
        return response

    async def send(self, command: Any) -> Any:
        return (await self.dispatch(command)).result

    async def query(self, query: Any) -> Any:
        return (await self.dispatch(query)).result
