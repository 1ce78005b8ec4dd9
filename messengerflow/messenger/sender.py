"""MessageSender protocol: the interface the conversation engine sends through."""

from typing import Any, Protocol, runtime_checkable

from messengerflow.messenger.client import MessagePayload


@runtime_checkable
class MessageSender(Protocol):
    """Protocol satisfied by :class:`~messengerflow.messenger.client.GraphAPIClient`."""

    async def send(
        self,
        user_id: str,
        message: MessagePayload,
        *,
        quick_replies: list[dict[str, Any]] | None = None,
    ) -> bool:
        """Deliver a message. Returns True on success and never raises."""
        ...
