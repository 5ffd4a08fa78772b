"""Request context — one per inbound message, carried through both stages."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

from playbot.events import MessageEvent

if TYPE_CHECKING:
    from playbot.config import Settings


@dataclass(frozen=True)
class RequestContext:
    """An inbound message plus what is needed to answer it.

    `original_ts` is the ts of the unedited message. For edits it comes from
    the nested sub-message, not the `message_changed` envelope, so that it
    matches the key the reply was cached under.

    `reply_to_id` stays None until the filter stage accepts the message.
    """

    channel: str
    original_ts: str
    user: str
    text: str
    edited: bool
    bot_name: str
    reply_to_id: str | None = None

    @classmethod
    def from_event(cls, event: MessageEvent, settings: Settings) -> RequestContext:
        if event.is_edit and event.edited is not None:
            text, original_ts = event.edited.text, event.edited.ts
        else:
            text, original_ts = event.text, event.ts

        return cls(
            channel=event.channel,
            original_ts=original_ts,
            user=event.user,
            text=text,
            edited=event.is_edit,
            bot_name=settings.BOT_NAME,
        )

    def accept(self, reply_to_id: str) -> None:
        """Mark the context as addressed to us.

        The only field that changes after construction.
        """
        object.__setattr__(self, "reply_to_id", reply_to_id)

    def info(self) -> dict:
        """Flat dict of the context for structured log lines."""
        return asdict(self)
