"""Shared test fixtures."""

from typing import Any

import pytest

from messengerflow.conversation import ConversationRegistry
from messengerflow.events import InboundEvent
from messengerflow.router import EventRouter


class FakeSender:
    """Records outbound messages instead of calling the Graph API."""

    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.sent: list[tuple[str, Any]] = []
        self.quick_replies: list[list[dict[str, Any]] | None] = []
        self.profile: dict[str, Any] = {"first_name": "Alice", "last_name": "Smith"}

    async def send(self, user_id: str, message: Any, *, quick_replies=None) -> bool:
        self.sent.append((user_id, message))
        self.quick_replies.append(quick_replies)
        return self.ok

    async def get_user_profile(self, user_id: str) -> dict[str, Any]:
        return dict(self.profile, id=user_id)

    async def close(self) -> None:
        pass

    def texts(self, user_id: str | None = None) -> list[Any]:
        return [msg for uid, msg in self.sent if user_id is None or uid == user_id]


def make_event(
    text: str | None = "hello",
    *,
    sender_id: str = "user-1",
    postback: str | None = None,
    **extra: Any,
) -> InboundEvent:
    """Build an InboundEvent from a Messenger-style messaging entry."""
    data: dict[str, Any] = {
        "sender": {"id": sender_id},
        "recipient": {"id": "page-1"},
        "timestamp": 1700000000000,
    }
    if postback is not None:
        data["postback"] = {"title": "Button", "payload": postback}
    elif text is not None or "attachments" in extra:
        message: dict[str, Any] = {"mid": "m-1"}
        if text is not None:
            message["text"] = text
        if "attachments" in extra:
            message["attachments"] = extra.pop("attachments")
        data["message"] = message
    data.update(extra)
    return InboundEvent.from_dict(data)


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def registry(sender: FakeSender) -> ConversationRegistry:
    return ConversationRegistry(sender)


@pytest.fixture
def router(registry: ConversationRegistry, sender: FakeSender) -> EventRouter:
    return EventRouter(registry, sender)
