"""EventRouter: sends each inbound event to exactly one kind of handler.

Precedence for an event from a given user:

1. The user's active conversation, if any. Nothing else fires.
2. The first hear matcher (in registration order) matching the message text.
3. The generic handler registered for the event type. Message handlers are
   skipped when a hear matcher already captured the message.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from messengerflow.chat import Chat
from messengerflow.events import EventType, InboundEvent
from messengerflow.handlers import EventHandler, invoke

if TYPE_CHECKING:
    from messengerflow.conversation import ConversationRegistry
    from messengerflow.messenger.client import GraphAPIClient

logger = logging.getLogger(__name__)

Pattern = str | re.Pattern[str]


@dataclass(frozen=True)
class HearMatcher:
    """A set of patterns and the handler to call when one matches."""

    patterns: tuple[Pattern, ...]
    handler: EventHandler

    def matches(self, text: str) -> bool:
        normalized = text.strip().casefold()
        for pattern in self.patterns:
            if isinstance(pattern, str):
                if normalized == pattern.strip().casefold():
                    return True
            elif pattern.search(text):
                return True
        return False


def _normalize_patterns(patterns: Pattern | Iterable[Pattern]) -> tuple[Pattern, ...]:
    if isinstance(patterns, (str, re.Pattern)):
        patterns = (patterns,)
    elif isinstance(patterns, (list, tuple)):
        patterns = tuple(patterns)
    else:
        kind = type(patterns).__name__
        msg = f"hear() patterns must be a string, regex or list of them, got {kind}"
        raise TypeError(msg)

    if not patterns:
        msg = "hear() needs at least one pattern"
        raise ValueError(msg)
    for pattern in patterns:
        if not isinstance(pattern, (str, re.Pattern)):
            msg = f"Unsupported hear pattern {pattern!r} (expected str or re.Pattern)"
            raise TypeError(msg)
    return patterns


class EventRouter:
    """Routes events to conversations, hear matchers and event handlers."""

    def __init__(self, conversations: ConversationRegistry, client: GraphAPIClient) -> None:
        self._conversations = conversations
        self._client = client
        self._handlers: dict[EventType, EventHandler] = {}
        self._hear: list[HearMatcher] = []

    # -- Registration --------------------------------------------------------------

    def on(self, event_type: str | EventType, handler: EventHandler) -> EventHandler:
        """Register the handler for *event_type*, replacing any previous one."""
        kind = EventType.parse(event_type)
        if kind in self._handlers:
            logger.info("Replacing %s handler", kind.value)
        self._handlers[kind] = handler
        return handler

    def hear(self, patterns: Pattern | Iterable[Pattern], handler: EventHandler) -> EventHandler:
        """Register a handler for messages matching any of *patterns*.

        String patterns match the whole message, ignoring case and
        surrounding whitespace. Regex patterns are searched in the raw text.
        """
        self._hear.append(HearMatcher(_normalize_patterns(patterns), handler))
        return handler

    def get_handler(self, event_type: str | EventType) -> EventHandler | None:
        return self._handlers.get(EventType.parse(event_type))

    @property
    def hear_matchers(self) -> list[HearMatcher]:
        return list(self._hear)

    # -- Dispatch ------------------------------------------------------------------

    def chat_for(self, user_id: str) -> Chat:
        return Chat(user_id, self._client, self._conversations)

    async def dispatch(self, event: InboundEvent) -> None:
        """Route one event. Handler errors are logged, never raised."""
        if not event.sender_id:
            logger.warning("Dropping event without sender (type=%s)", event.type)
            return

        convo = self._conversations.get(event.sender_id)
        if convo is not None:
            await self._run(convo.handle_input, event.sender_id, "conversation", event)
            return

        if event.type is None:
            logger.debug("Dropping unrecognized event from %s", event.sender_id)
            return

        chat = self.chat_for(event.sender_id)

        captured = False
        if event.is_message and event.has_text:
            matcher = next((m for m in self._hear if m.matches(event.text)), None)
            if matcher is not None:
                captured = True
                await self._run(
                    matcher.handler, event.sender_id, "hear", event, chat, {"captured": True}
                )

        handler = self._handlers.get(event.type)
        if handler is None:
            return
        if event.is_message:
            if not captured:
                await self._run(
                    handler, event.sender_id, "message", event, chat, {"captured": False}
                )
        else:
            await self._run(handler, event.sender_id, event.type.value, event, chat, {})

    async def _run(self, handler: Callable, user_id: str, label: str, *args) -> None:
        try:
            await invoke(handler, *args)
        except Exception:
            logger.exception("%s handler failed for %s", label, user_id)
