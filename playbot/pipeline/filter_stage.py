"""Filter stage — decides which messages are requests for us.

A message passes when:

1. It is not from a bot (checked for new messages only; an edit
   notification carries no author to look up).
2. It starts with a `<@USER>:` mention.
3. The mentioned user's Slack name equals our configured BOT_NAME.

Lookup failures drop the message. Nothing is retried.
"""

from __future__ import annotations

import asyncio

import structlog

from playbot.context import RequestContext
from playbot.errors import UserLookupError
from playbot.extractor import extract_reply_to_id
from playbot.slack import SlackGateway

logger = structlog.get_logger()


class FilterStage:
    """Moves contexts from the inbound queue to the accepted queue."""

    def __init__(
        self,
        inbound: asyncio.Queue[RequestContext],
        accepted: asyncio.Queue[RequestContext],
        slack: SlackGateway,
    ):
        self.inbound = inbound
        self.accepted = accepted
        self.slack = slack

    async def run(self):
        """Worker loop. Runs until cancelled."""
        while True:
            ctx = await self.inbound.get()
            try:
                if await self.process(ctx):
                    self.accepted.put_nowait(ctx)
            except Exception:
                logger.exception("filter_failed", channel=ctx.channel, ts=ctx.original_ts)
            finally:
                self.inbound.task_done()

    async def process(self, ctx: RequestContext) -> bool:
        """Return True and stamp `ctx.reply_to_id` if the message is for us."""
        logger.debug("message_before_filter", **ctx.info())

        if not ctx.edited:
            try:
                is_bot = await self.slack.is_bot(ctx.user)
            except UserLookupError as e:
                logger.warning("author_lookup_failed", channel=ctx.channel, ts=ctx.original_ts, error=str(e))
                return False
            if is_bot:
                logger.debug("ignoring_bot_message", channel=ctx.channel, user=ctx.user)
                return False

        reply_to_id = extract_reply_to_id(ctx.text)
        if reply_to_id is None:
            logger.debug("ignoring_unaddressed_message", channel=ctx.channel, ts=ctx.original_ts)
            return False

        try:
            addressee = await self.slack.get_user(reply_to_id)
        except UserLookupError as e:
            logger.warning("addressee_lookup_failed", channel=ctx.channel, ts=ctx.original_ts, error=str(e))
            return False

        if addressee.name != ctx.bot_name:
            logger.debug("addressed_to_someone_else", addressee=addressee.name, bot_name=ctx.bot_name)
            return False

        ctx.accept(reply_to_id)
        return True
