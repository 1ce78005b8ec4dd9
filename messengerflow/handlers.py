"""Handler signatures shared by the router and the conversation engine."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from messengerflow.chat import Chat
    from messengerflow.conversation import Conversation
    from messengerflow.events import InboundEvent

# Hear and event handlers: (event, chat, flags). Flags carry ``captured``
# for message handlers and are empty otherwise.
EventHandler = Callable[["InboundEvent", "Chat", dict[str, Any]], Awaitable[None] | None]

# Answer handlers: (event, conversation, flags).
AnswerHandler = Callable[
    ["InboundEvent", "Conversation", dict[str, Any]], Awaitable[None] | None
]


async def invoke(handler: Callable[..., Any], *args: Any) -> Any:
    """Call a sync or async handler and return its (awaited) result."""
    result = handler(*args)
    if inspect.isawaitable(result):
        result = await result
    return result
