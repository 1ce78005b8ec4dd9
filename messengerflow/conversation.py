"""Per-user conversations and the registry that owns them.

A :class:`Conversation` is a FIFO queue of ask/answer steps driven by user
replies. It starts in ``BUILDING`` while the setup callback queues steps
(nothing is sent), moves to ``AWAITING_ANSWER`` once the first question goes
out, and reaches ``ENDED`` when the queue runs dry or :meth:`Conversation.end`
is called. Ending a conversation removes it from its registry.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from messengerflow.handlers import AnswerHandler, invoke

if TYPE_CHECKING:
    from messengerflow.events import InboundEvent
    from messengerflow.messenger.client import MessagePayload
    from messengerflow.messenger.sender import MessageSender

logger = logging.getLogger(__name__)

ConversationBuilder = Callable[["Conversation"], None]


class ConversationState(StrEnum):
    BUILDING = "building"
    AWAITING_ANSWER = "awaiting_answer"
    ENDED = "ended"


@dataclass
class Step:
    """A queued question and the handler for its answer.

    ``question`` is a message payload, or a function taking the conversation
    and returning one; functions are called when the question is sent.
    """

    question: MessagePayload | Callable[[Conversation], MessagePayload]
    answer: AnswerHandler
    quick_replies: list[dict[str, Any]] | None = None


class Conversation:
    """A linear question/answer dialog with a single user."""

    def __init__(
        self,
        user_id: str,
        sender: MessageSender,
        registry: ConversationRegistry | None = None,
    ) -> None:
        self._user_id = str(user_id)
        self._sender = sender
        self._registry = registry
        self.context: dict[str, Any] = {}
        self._queue: deque[Step] = deque()
        self._state = ConversationState.BUILDING
        self._pending_answer: AnswerHandler | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    def __repr__(self) -> str:
        return (
            f"Conversation(user_id={self._user_id!r}, state={self._state.value}, "
            f"steps={len(self._queue)})"
        )

    # -- Properties ----------------------------------------------------------------

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def state(self) -> ConversationState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state is not ConversationState.ENDED

    @property
    def pending_steps(self) -> int:
        """Number of steps still queued, including the one being asked."""
        return len(self._queue)

    # -- Application API -----------------------------------------------------------

    def ask(
        self,
        question: Any,
        answer: AnswerHandler,
        *,
        quick_replies: list[dict[str, Any]] | None = None,
    ) -> None:
        """Queue a question and the handler for the user's reply.

        Questions queued while building, or while another question is
        awaiting its answer, wait their turn. A question queued on an idle
        conversation is sent right away.
        """
        if self._state is ConversationState.ENDED:
            logger.warning("ask() ignored: conversation with %s has ended", self._user_id)
            return

        was_empty = not self._queue
        self._queue.append(Step(question, answer, quick_replies))
        if was_empty and self._state is not ConversationState.BUILDING:
            task = asyncio.get_running_loop().create_task(self._advance())
            self._tasks.add(task)
            task.add_done_callback(self._on_advance_done)

    async def say(
        self,
        message: MessagePayload,
        *,
        quick_replies: list[dict[str, Any]] | None = None,
    ) -> bool:
        """Send a message outside the question flow."""
        return await self._sender.send(self._user_id, message, quick_replies=quick_replies)

    def set(self, key: str, value: Any) -> None:
        self.context[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.context.get(key, default)

    def end(self) -> None:
        """Stop the conversation and deregister it. Safe to call twice."""
        if self._state is ConversationState.ENDED:
            return
        self._state = ConversationState.ENDED
        self._queue.clear()
        self._pending_answer = None
        if self._registry is not None:
            self._registry.remove(self._user_id, self)
        logger.info("Conversation with %s ended", self._user_id)

    # -- Engine --------------------------------------------------------------------

    async def start(self) -> None:
        """Leave the building phase and send the first question."""
        if self._state is not ConversationState.BUILDING:
            return
        await self._advance()

    async def handle_input(self, event: InboundEvent) -> None:
        """Feed a user event to the question currently awaiting an answer."""
        if self._state is not ConversationState.AWAITING_ANSWER:
            return
        if not event.has_text:
            # Non-text input (stickers, attachments) is not an answer.
            logger.debug("Conversation with %s ignored non-text event", self._user_id)
            return

        answer = self._pending_answer
        if answer is None:
            return
        self._pending_answer = None

        try:
            await invoke(answer, event, self, {})
        except Exception:
            if self._state is ConversationState.AWAITING_ANSWER:
                self._pending_answer = answer
            raise

        if self._state is ConversationState.ENDED:
            return
        self._queue.popleft()
        await self._advance()

    async def _advance(self) -> None:
        if self._state is ConversationState.ENDED:
            return
        if not self._queue:
            self.end()
            return
        if self._pending_answer is not None:
            return

        step = self._queue[0]
        try:
            message = step.question(self) if callable(step.question) else step.question
        except Exception:
            # A question that cannot be rendered ends the conversation.
            self.end()
            raise
        self._state = ConversationState.AWAITING_ANSWER
        self._pending_answer = step.answer
        sent = await self._sender.send(
            self._user_id, message, quick_replies=step.quick_replies
        )
        if not sent:
            logger.warning("Question to %s was not delivered", self._user_id)

    def _on_advance_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Sending question to %s failed", self._user_id, exc_info=task.exception()
            )


class ConversationRegistry:
    """Owns the active conversations, at most one per user.

    All access to the map goes through a single lock so concurrent webhook
    deliveries can start, look up and end conversations safely.
    """

    def __init__(self, sender: MessageSender) -> None:
        self._sender = sender
        self._conversations: dict[str, Conversation] = {}
        self._lock = threading.RLock()

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return str(user_id) in self._conversations

    def __len__(self) -> int:
        with self._lock:
            return len(self._conversations)

    @property
    def user_ids(self) -> list[str]:
        """Users with a registered conversation."""
        with self._lock:
            return list(self._conversations)

    def get(self, user_id: str) -> Conversation | None:
        """Return the active conversation for *user_id*, if any."""
        with self._lock:
            convo = self._conversations.get(str(user_id))
        if convo is not None and convo.active:
            return convo
        return None

    async def start(self, user_id: str, builder: ConversationBuilder) -> Conversation:
        """Start a conversation with *user_id*, or resume the active one.

        When a conversation is already active it is returned untouched and
        *builder* is not called. Otherwise *builder* receives the new
        conversation to queue its steps, and the first question is sent once
        it returns.
        """
        user_id = str(user_id)
        with self._lock:
            existing = self._conversations.get(user_id)
            if existing is not None and existing.active:
                logger.debug("Resuming conversation with %s", user_id)
                return existing
            convo = Conversation(user_id, self._sender, self)
            self._conversations[user_id] = convo

        logger.info("Conversation with %s started", user_id)
        try:
            result = builder(convo)
        except Exception:
            convo.end()
            raise
        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            convo.end()
            msg = "Conversation builder must be a plain function, not a coroutine function"
            raise TypeError(msg)
        await convo.start()
        return convo

    def remove(self, user_id: str, conversation: Conversation | None = None) -> bool:
        """Deregister *user_id*. Returns True if an entry was removed.

        When *conversation* is given, only that instance is removed.
        """
        user_id = str(user_id)
        with self._lock:
            current = self._conversations.get(user_id)
            if current is None:
                return False
            if conversation is not None and current is not conversation:
                return False
            del self._conversations[user_id]
            return True

