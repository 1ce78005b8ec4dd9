"""Outbound side of the Messenger platform."""

from messengerflow.messenger.client import GraphAPIClient, MessagePayload, build_message
from messengerflow.messenger.sender import MessageSender

__all__ = [
    "GraphAPIClient",
    "MessagePayload",
    "MessageSender",
    "build_message",
]
