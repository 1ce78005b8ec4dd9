"""Inbound webhook event model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class EventType(StrEnum):
    """Kinds of messaging events delivered by the webhook.

    Member order is the classification order: a messaging entry takes the
    type of the first key it carries.
    """

    MESSAGE = "message"
    POSTBACK = "postback"
    DELIVERY = "delivery"
    READ = "read"
    OPTIN = "optin"
    REFERRAL = "referral"
    REACTION = "reaction"
    ACCOUNT_LINKING = "account_linking"

    @classmethod
    def parse(cls, value: str | EventType) -> EventType:
        """Return the member for *value*. Raises ValueError on unknown names."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            known = ", ".join(m.value for m in cls)
            msg = f"Unknown event type '{value}' (expected one of: {known})"
            raise ValueError(msg) from None


@dataclass(frozen=True)
class InboundEvent:
    """A single entry from a webhook ``messaging`` list.

    Attributes:
        type: The classified event kind, or ``None`` when unrecognized.
        sender_id: Page-scoped id of the user who triggered the event.
        recipient_id: Id of the page receiving the event.
        timestamp: Milliseconds since epoch, as sent by the platform.
        text: Message text, ``None`` for non-text messages and other types.
        attachments: Attachment dicts of a message (images, files, ...).
        quick_reply_payload: Payload of the tapped quick reply, if any.
        postback_payload: Payload of a postback button.
        postback_title: Title of the postback button.
        raw: The untouched messaging entry.
    """

    type: EventType | None
    sender_id: str | None
    recipient_id: str | None = None
    timestamp: int | None = None
    text: str | None = None
    attachments: tuple[dict[str, Any], ...] = ()
    quick_reply_payload: str | None = None
    postback_payload: str | None = None
    postback_title: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    # -- Convenience properties ------------------------------------------------

    @property
    def is_message(self) -> bool:
        return self.type is EventType.MESSAGE

    @property
    def has_text(self) -> bool:
        return bool(self.text)

    # -- Parsing -----------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InboundEvent:
        """Build an event from a raw messaging entry."""
        event_type = next((t for t in EventType if data.get(t.value) is not None), None)

        sender_id = _as_id(_as_dict(data.get("sender")).get("id"))
        recipient_id = _as_id(_as_dict(data.get("recipient")).get("id"))

        text = None
        attachments: tuple[dict[str, Any], ...] = ()
        quick_reply_payload = None
        postback_payload = None
        postback_title = None

        if event_type is EventType.MESSAGE:
            message = _as_dict(data["message"])
            text = _as_str(message.get("text"))
            raw_attachments = message.get("attachments")
            if isinstance(raw_attachments, list):
                attachments = tuple(a for a in raw_attachments if isinstance(a, dict))
            quick_reply_payload = _as_str(_as_dict(message.get("quick_reply")).get("payload"))
        elif event_type is EventType.POSTBACK:
            postback = _as_dict(data["postback"])
            postback_payload = _as_str(postback.get("payload"))
            postback_title = _as_str(postback.get("title"))

        return cls(
            type=event_type,
            sender_id=sender_id,
            recipient_id=recipient_id,
            timestamp=data.get("timestamp"),
            text=text,
            attachments=attachments,
            quick_reply_payload=quick_reply_payload,
            postback_payload=postback_payload,
            postback_title=postback_title,
            raw=data,
        )


# Malformed fields are read as missing rather than failing the whole batch.


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _as_id(value: Any) -> str | None:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return None
    return str(value)
