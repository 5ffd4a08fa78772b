"""Inbound event variants produced by the event source.

The event source yields one of three variants:

    MessageEvent         — a Slack `message` event, optionally an edit
    TransportErrorEvent  — connection trouble, logged and ignored
    InvalidAuthEvent     — credentials rejected, ends ingestion

An edit arrives as a `message` event with subtype `message_changed`. The
envelope carries the channel and its own ts; the edited message (with the
ts of the original post and the new text) is nested under `message`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

SUBTYPE_MESSAGE_CHANGED = "message_changed"


@dataclass(frozen=True)
class EditedMessage:
    """The nested sub-message of a `message_changed` event."""

    ts: str
    text: str
    user: str = ""


@dataclass(frozen=True)
class MessageEvent:
    """A plain or edited Slack message."""

    channel: str
    ts: str
    user: str = ""
    text: str = ""
    subtype: str = ""
    edited: EditedMessage | None = None

    @property
    def is_edit(self) -> bool:
        return self.subtype == SUBTYPE_MESSAGE_CHANGED

    @classmethod
    def from_slack(cls, payload: dict[str, Any]) -> MessageEvent:
        """Build a MessageEvent from a raw Slack event dict.

        Malformed payloads never raise: missing fields become empty strings
        and are rejected later by the filter stage.
        """
        subtype = payload.get("subtype") or ""
        edited = None
        if subtype == SUBTYPE_MESSAGE_CHANGED:
            inner = payload.get("message") or {}
            edited = EditedMessage(
                ts=inner.get("ts", ""),
                text=inner.get("text", ""),
                user=inner.get("user", ""),
            )
        return cls(
            channel=payload.get("channel", ""),
            ts=payload.get("ts", ""),
            user=payload.get("user", ""),
            text=payload.get("text", ""),
            subtype=subtype,
            edited=edited,
        )


@dataclass(frozen=True)
class TransportErrorEvent:
    detail: str


@dataclass(frozen=True)
class InvalidAuthEvent:
    detail: str = "invalid_auth"


InboundEvent = MessageEvent | TransportErrorEvent | InvalidAuthEvent
