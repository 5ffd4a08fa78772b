"""Compile stage — runs accepted snippets and answers in the channel.

For every accepted context exactly one reply is attempted:

    no snippet             -> instructional error, posted and cached
    format/transport error -> "Error compiling: ...", posted and cached
    compile diagnostics    -> diagnostics, posted and cached
    output, new message    -> fenced output, posted and cached
    output, edited message -> cached reply updated in place (no new entry);
                              skipped if the original reply is not cached

The cache insert is awaited before the context is done, so an edit that
follows its original is always able to find the reply.
"""

from __future__ import annotations

import asyncio

import structlog

from playbot.cache import ReplyCache
from playbot.context import RequestContext
from playbot.errors import CompileError, FormatError, TransportError
from playbot.extractor import extract_code
from playbot.playground import PlaygroundClient
from playbot.slack import SlackGateway

logger = structlog.get_logger()

NO_CODE_REPLY = (
    "Error: No code received. Accepted formats are\n"
    "`single-line code`\n"
    "```multi-line code```\n"
)


def compile_error_reply(detail: str) -> str:
    return f"Error compiling: {detail}\n"


def diagnostics_reply(diagnostics: str) -> str:
    return f"Compile errors from Go Playground: {diagnostics}"


class CompileStage:
    """Consumes accepted contexts and posts or updates replies."""

    def __init__(
        self,
        accepted: asyncio.Queue[RequestContext],
        slack: SlackGateway,
        playground: PlaygroundClient,
        cache: ReplyCache,
    ):
        self.accepted = accepted
        self.slack = slack
        self.playground = playground
        self.cache = cache

    async def run(self):
        """Worker loop. Runs until cancelled."""
        while True:
            ctx = await self.accepted.get()
            try:
                await self.process(ctx)
            except Exception:
                logger.exception("compile_stage_failed", channel=ctx.channel, ts=ctx.original_ts)
            finally:
                self.accepted.task_done()

    async def process(self, ctx: RequestContext):
        logger.debug("message_after_filter", **ctx.info())

        code = extract_code(ctx.text, ctx.reply_to_id or "")
        if code is None:
            await self._post_and_cache(ctx, NO_CODE_REPLY)
            return

        try:
            result = await self.playground.run(code)
            result.raise_for_errors()
        except (FormatError, TransportError) as e:
            logger.warning("compile_request_failed", channel=ctx.channel, ts=ctx.original_ts, error=str(e))
            await self._post_and_cache(ctx, compile_error_reply(str(e)))
            return
        except CompileError as e:
            await self._post_and_cache(ctx, diagnostics_reply(e.diagnostics))
            return

        output = result.formatted_output()
        if ctx.edited:
            await self._update_cached(ctx, output)
        else:
            await self._post_and_cache(ctx, output)

    async def _post_and_cache(self, ctx: RequestContext, text: str) -> str | None:
        """Post a new reply and remember it for later edits."""
        try:
            reply_ts = await self.slack.post_message(ctx.channel, text)
        except TransportError as e:
            logger.error("post_failed", channel=ctx.channel, ts=ctx.original_ts, error=str(e))
            return None

        if self.cache.add(ctx.original_ts, reply_ts):
            logger.debug("reply_cache_evicted", capacity=self.cache.capacity)
        logger.info("reply_posted", channel=ctx.channel, ts=ctx.original_ts, reply_ts=reply_ts)
        return reply_ts

    async def _update_cached(self, ctx: RequestContext, text: str):
        reply_ts = self.cache.get(ctx.original_ts)
        if reply_ts is None:
            # Original reply evicted or never posted
            logger.info("edit_without_cached_reply", channel=ctx.channel, ts=ctx.original_ts)
            return

        try:
            await self.slack.update_message(ctx.channel, reply_ts, text)
        except TransportError as e:
            logger.error("update_failed", channel=ctx.channel, ts=ctx.original_ts, reply_ts=reply_ts, error=str(e))
            return
        logger.info("reply_updated", channel=ctx.channel, ts=ctx.original_ts, reply_ts=reply_ts)
