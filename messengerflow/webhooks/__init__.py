"""Inbound webhook gateway."""

from messengerflow.webhooks.server import WebhookServer, create_web_app

__all__ = ["WebhookServer", "create_web_app"]
