"""MessengerFlow: the application-facing bot object.

Usage::

    bot = MessengerFlow(access_token="...", verify_token="...")

    @bot.hear(["hi", re.compile(r"^hello", re.I)])
    async def greet(event, chat, flags):
        await chat.say("Hello!")

    @bot.on("postback")
    async def on_postback(event, chat, flags):
        ...

    bot.run(port=3000)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from aiohttp import web

from messengerflow.config import settings
from messengerflow.conversation import Conversation, ConversationBuilder, ConversationRegistry
from messengerflow.events import EventType
from messengerflow.handlers import EventHandler
from messengerflow.messenger.client import GraphAPIClient, MessagePayload
from messengerflow.router import EventRouter, Pattern
from messengerflow.webhooks.server import WebhookServer, create_web_app

logger = logging.getLogger(__name__)


class MessengerFlow:
    """Wires the Graph API client, conversations, router and webhook together."""

    def __init__(
        self,
        access_token: str | None = None,
        verify_token: str | None = None,
        app_secret: str | None = None,
        webhook: str | None = None,
        *,
        client: GraphAPIClient | None = None,
    ) -> None:
        self.verify_token = verify_token if verify_token is not None else settings.verify_token
        self.app_secret = app_secret if app_secret is not None else settings.app_secret
        self.webhook = webhook or settings.webhook_path
        self.client = client or GraphAPIClient(access_token)
        self.conversations = ConversationRegistry(self.client)
        self.router = EventRouter(self.conversations, self.client)
        self._server: WebhookServer | None = None

    # -- Registration --------------------------------------------------------------

    def on(self, event_type: str | EventType, handler: EventHandler | None = None):
        """Register the handler for an event type. Usable as a decorator."""
        if handler is not None:
            return self.router.on(event_type, handler)

        def decorator(fn: EventHandler) -> EventHandler:
            return self.router.on(event_type, fn)

        return decorator

    def hear(self, patterns: Pattern | Iterable[Pattern], handler: EventHandler | None = None):
        """Register a keyword/regex handler. Usable as a decorator."""
        if handler is not None:
            return self.router.hear(patterns, handler)

        def decorator(fn: EventHandler) -> EventHandler:
            return self.router.hear(patterns, fn)

        return decorator

    # -- Outbound ------------------------------------------------------------------

    async def say(
        self,
        user_id: str,
        message: MessagePayload,
        *,
        quick_replies: list[dict[str, Any]] | None = None,
    ) -> bool:
        return await self.client.send(user_id, message, quick_replies=quick_replies)

    async def get_user_profile(self, user_id: str) -> dict[str, Any]:
        return await self.client.get_user_profile(user_id)

    async def conversation(self, user_id: str, builder: ConversationBuilder) -> Conversation:
        """Start a conversation with *user_id*, or return the active one."""
        return await self.conversations.start(user_id, builder)

    # -- Serving -------------------------------------------------------------------

    def create_web_app(self) -> web.Application:
        app = create_web_app(
            self.router, verify_token=self.verify_token, webhook_path=self.webhook
        )
        app.on_cleanup.append(self._on_cleanup)
        return app

    async def _on_cleanup(self, app: web.Application) -> None:
        await self.client.close()

    async def start(self, port: int | None = None) -> None:
        """Serve the webhook in the running event loop."""
        if self._server is None:
            self._server = WebhookServer(self.create_web_app(), port)
        await self._server.start()
        logger.info("Webhook running on localhost:%d%s", self._server.port, self.webhook)

    async def stop(self) -> None:
        if self._server is not None:
            await self._server.stop()
            self._server = None

    def run(self, port: int | None = None) -> None:
        """Serve the webhook until interrupted (blocking)."""
        port = port or settings.webhook_port
        logger.info("MessengerFlow running on port %d (webhook %s)", port, self.webhook)
        web.run_app(self.create_web_app(), port=port, print=None)
