"""Messenger webhook dispatcher with per-user conversations."""

from messengerflow.bot import MessengerFlow
from messengerflow.chat import Chat
from messengerflow.conversation import Conversation, ConversationRegistry, ConversationState
from messengerflow.events import EventType, InboundEvent
from messengerflow.messenger.client import GraphAPIClient
from messengerflow.router import EventRouter

__all__ = [
    "Chat",
    "Conversation",
    "ConversationRegistry",
    "ConversationState",
    "EventRouter",
    "EventType",
    "GraphAPIClient",
    "InboundEvent",
    "MessengerFlow",
]
