"""Chat handle passed to hear and event handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from messengerflow.conversation import Conversation, ConversationBuilder, ConversationRegistry
    from messengerflow.messenger.client import GraphAPIClient, MessagePayload


class Chat:
    """Operations bound to the user who sent an event."""

    def __init__(
        self,
        user_id: str,
        client: GraphAPIClient,
        conversations: ConversationRegistry,
    ) -> None:
        self.user_id = str(user_id)
        self._client = client
        self._conversations = conversations

    def __repr__(self) -> str:
        return f"Chat(user_id={self.user_id!r})"

    async def say(
        self,
        message: MessagePayload,
        *,
        quick_replies: list[dict[str, Any]] | None = None,
    ) -> bool:
        return await self._client.send(self.user_id, message, quick_replies=quick_replies)

    async def get_user_profile(self) -> dict[str, Any]:
        return await self._client.get_user_profile(self.user_id)

    async def conversation(self, builder: ConversationBuilder) -> Conversation:
        """Start a conversation with this user, or return the active one."""
        return await self._conversations.start(self.user_id, builder)
