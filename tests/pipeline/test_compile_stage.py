"""Tests for the Compile Stage."""

from __future__ import annotations

import asyncio

import pytest

from playbot.context import RequestContext
from playbot.errors import FormatError, TransportError
from playbot.pipeline.compile_stage import NO_CODE_REPLY, CompileStage
from playbot.playground import PlaygroundResult

ORIGINAL_TS = "1700000000.000100"
REPLY_TS = "1700000001.000200"


class TestCompileStage:
    @pytest.fixture(autouse=True)
    def _stage(self, mock_slack, mock_playground, cache, settings):
        self.slack = mock_slack
        self.playground = mock_playground
        self.cache = cache
        self.settings = settings
        self.accepted: asyncio.Queue = asyncio.Queue()
        self.stage = CompileStage(self.accepted, mock_slack, mock_playground, cache)

    def _ctx(self, event) -> RequestContext:
        ctx = RequestContext.from_event(event, self.settings)
        ctx.accept("UBOT123")
        return ctx

    @pytest.mark.asyncio
    async def test_posts_output_and_caches(self, make_message):
        await self.stage.process(self._ctx(make_message("<@UBOT123>: `1+1`")))

        self.playground.run.assert_awaited_once_with("1+1")
        self.slack.post_message.assert_awaited_once_with("C024BE91L", "```2```")
        assert self.cache.get(ORIGINAL_TS) == REPLY_TS

    @pytest.mark.asyncio
    async def test_snippet_is_unescaped_before_compiling(self, make_message):
        await self.stage.process(self._ctx(make_message("<@UBOT123>: `fmt.Println(1 &lt;= 2)`")))
        self.playground.run.assert_awaited_once_with("fmt.Println(1 <= 2)")

    @pytest.mark.asyncio
    async def test_no_snippet_posts_instructions(self, make_message):
        await self.stage.process(self._ctx(make_message("<@UBOT123>: plain text no backticks")))

        self.playground.run.assert_not_called()
        self.slack.post_message.assert_awaited_once_with("C024BE91L", NO_CODE_REPLY)
        assert "`single-line code`" in NO_CODE_REPLY
        assert "```multi-line code```" in NO_CODE_REPLY
        assert self.cache.get(ORIGINAL_TS) == REPLY_TS

    @pytest.mark.asyncio
    async def test_transport_error_posts_error_reply(self, make_message):
        self.playground.run.side_effect = TransportError("connection refused")

        await self.stage.process(self._ctx(make_message("<@UBOT123>: `1+1`")))

        self.slack.post_message.assert_awaited_once_with("C024BE91L", "Error compiling: connection refused\n")
        assert self.cache.contains(ORIGINAL_TS)

    @pytest.mark.asyncio
    async def test_format_error_posts_error_reply(self, make_message):
        self.playground.run.side_effect = FormatError("expected statement")

        await self.stage.process(self._ctx(make_message("<@UBOT123>: `}{`")))

        text = self.slack.post_message.call_args[0][1]
        assert text == "Error compiling: expected statement\n"
        assert self.cache.contains(ORIGINAL_TS)

    @pytest.mark.asyncio
    async def test_compile_errors_posted_verbatim(self, make_message):
        self.playground.run.side_effect = None
        self.playground.run.return_value = PlaygroundResult(compile_errors="prog.go:4: undefined: y")

        await self.stage.process(self._ctx(make_message("<@UBOT123>: `y`")))

        self.slack.post_message.assert_awaited_once_with(
            "C024BE91L", "Compile errors from Go Playground: prog.go:4: undefined: y"
        )
        assert self.cache.contains(ORIGINAL_TS)

    @pytest.mark.asyncio
    async def test_post_failure_caches_nothing(self, make_message):
        self.slack.post_message.side_effect = TransportError("chat.postMessage failed: channel_not_found")

        await self.stage.process(self._ctx(make_message("<@UBOT123>: `1+1`")))

        assert not self.cache.contains(ORIGINAL_TS)

    @pytest.mark.asyncio
    async def test_edit_with_cached_reply_updates(self, make_edit):
        self.cache.add(ORIGINAL_TS, REPLY_TS)

        await self.stage.process(self._ctx(make_edit("<@UBOT123>: `2+2`")))

        self.slack.update_message.assert_awaited_once_with("C024BE91L", REPLY_TS, "```4```")
        self.slack.post_message.assert_not_called()
        assert len(self.cache) == 1

    @pytest.mark.asyncio
    async def test_edit_without_cached_reply_does_nothing(self, make_edit):
        await self.stage.process(self._ctx(make_edit("<@UBOT123>: `2+2`")))

        self.slack.update_message.assert_not_called()
        self.slack.post_message.assert_not_called()
        assert len(self.cache) == 0

    @pytest.mark.asyncio
    async def test_edit_without_snippet_takes_error_path(self, make_edit):
        self.cache.add(ORIGINAL_TS, "older.reply")

        await self.stage.process(self._ctx(make_edit("<@UBOT123>: never mind")))

        self.slack.post_message.assert_awaited_once_with("C024BE91L", NO_CODE_REPLY)
        self.slack.update_message.assert_not_called()
        assert self.cache.get(ORIGINAL_TS) == REPLY_TS

    @pytest.mark.asyncio
    async def test_update_failure_is_swallowed(self, make_edit):
        self.cache.add(ORIGINAL_TS, REPLY_TS)
        self.slack.update_message.side_effect = TransportError("chat.update failed: message_not_found")

        await self.stage.process(self._ctx(make_edit("<@UBOT123>: `2+2`")))

        self.slack.post_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_run_processes_queue_in_order(self, make_message, make_edit):
        self.accepted.put_nowait(self._ctx(make_message("<@UBOT123>: `1+1`")))
        self.accepted.put_nowait(self._ctx(make_edit("<@UBOT123>: `2+2`")))

        worker = asyncio.create_task(self.stage.run())
        await self.accepted.join()
        worker.cancel()
        await asyncio.gather(worker, return_exceptions=True)

        # The insert from the first reply is visible to the edit right after it
        self.slack.post_message.assert_awaited_once_with("C024BE91L", "```2```")
        self.slack.update_message.assert_awaited_once_with("C024BE91L", REPLY_TS, "```4```")

    @pytest.mark.asyncio
    async def test_run_survives_unexpected_errors(self, make_message):
        self.playground.run.side_effect = [RuntimeError("boom"), PlaygroundResult(output="2")]
        self.accepted.put_nowait(self._ctx(make_message("<@UBOT123>: `1+1`", ts="1.1")))
        self.accepted.put_nowait(self._ctx(make_message("<@UBOT123>: `1+1`", ts="1.2")))

        worker = asyncio.create_task(self.stage.run())
        await self.accepted.join()
        worker.cancel()
        await asyncio.gather(worker, return_exceptions=True)

        self.slack.post_message.assert_awaited_once_with("C024BE91L", "```2```")
        assert self.cache.contains("1.2")
        assert not self.cache.contains("1.1")
