"""aiohttp webhook endpoint for the Messenger platform.

``GET <path>`` answers the subscription handshake, ``POST <path>`` receives
event batches and feeds them to the :class:`~messengerflow.router.EventRouter`
one at a time, in order, before acknowledging.
"""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import web

from messengerflow.config import settings
from messengerflow.events import InboundEvent
from messengerflow.router import EventRouter

logger = logging.getLogger(__name__)

PAGE_OBJECT = "page"
ACK_BODY = "EVENT_RECEIVED"

ROUTER_KEY = web.AppKey("router", EventRouter)
VERIFY_TOKEN_KEY = web.AppKey("verify_token", str)


async def _handle_verify(request: web.Request) -> web.Response:
    """GET: echo ``hub.challenge`` if mode and token check out."""
    mode = request.query.get("hub.mode")
    token = request.query.get("hub.verify_token")
    challenge = request.query.get("hub.challenge", "")

    expected = request.app[VERIFY_TOKEN_KEY]
    if mode == "subscribe" and expected and token == expected:
        logger.info("Webhook verified")
        return web.Response(text=challenge)

    logger.warning("Webhook verification rejected (mode=%s)", mode)
    return web.Response(status=403, text="Forbidden")


async def _handle_events(request: web.Request) -> web.Response:
    """POST: dispatch every messaging event of a page notification."""
    try:
        payload: dict[str, Any] = await request.json()
    except Exception:
        logger.warning("Webhook bad request: invalid JSON")
        return web.json_response({"error": "invalid JSON"}, status=400)

    if not isinstance(payload, dict) or payload.get("object") != PAGE_OBJECT:
        obj = payload.get("object") if isinstance(payload, dict) else None
        logger.warning("Webhook 404: unexpected object=%s", obj)
        return web.Response(status=404, text="Not Found")

    router = request.app[ROUTER_KEY]
    count = 0
    for entry in _as_list(payload.get("entry")):
        if not isinstance(entry, dict):
            continue
        for item in _as_list(entry.get("messaging")):
            if not isinstance(item, dict):
                continue
            await router.dispatch(InboundEvent.from_dict(item))
            count += 1

    logger.debug("Webhook batch processed: %d events", count)
    return web.Response(text=ACK_BODY)


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


async def _health(request: web.Request) -> web.Response:
    """GET /health: basic liveness check."""
    return web.json_response({"status": "ok"})


def create_web_app(
    router: EventRouter,
    *,
    verify_token: str | None = None,
    webhook_path: str | None = None,
) -> web.Application:
    """Build the aiohttp Application with routes."""
    path = webhook_path or settings.webhook_path
    app = web.Application()
    app[ROUTER_KEY] = router
    app[VERIFY_TOKEN_KEY] = verify_token if verify_token is not None else settings.verify_token
    app.router.add_get("/health", _health)
    app.router.add_get(path, _handle_verify)
    app.router.add_post(path, _handle_events)
    if not app[VERIFY_TOKEN_KEY]:
        logger.warning("VERIFY_TOKEN empty: webhook verification will always fail")
    return app


class WebhookServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(self, app: web.Application, port: int | None = None) -> None:
        self.app = app
        self.port = port or settings.webhook_port
        self._runner: web.AppRunner | None = None

    @property
    def running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        """Start listening for webhook deliveries."""
        if self._runner is not None:
            return
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "0.0.0.0", self.port)
        await site.start()
        logger.info("Webhook server listening on port %d", self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Webhook server stopped")
