"""Shared test fixtures for all test modules."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from playbot.cache import ReplyCache
from playbot.config import Settings
from playbot.events import MessageEvent
from playbot.playground import PlaygroundClient, PlaygroundResult
from playbot.slack import SlackGateway, SlackUser

BOT_ID = "UBOT123"
BOT_NAME = "playbot"
CHANNEL = "C024BE91L"
ORIGINAL_TS = "1700000000.000100"
REPLY_TS = "1700000001.000200"


@pytest.fixture
def settings() -> Settings:
    return Settings(BOT_NAME=BOT_NAME, CACHE_SIZE=8, _env_file=None)


@pytest.fixture
def cache() -> ReplyCache:
    return ReplyCache(8)


@pytest.fixture
def mock_slack():
    """SlackGateway where BOT_ID resolves to the bot and everyone else to alice."""

    async def get_user(user_id: str) -> SlackUser:
        if user_id == BOT_ID:
            return SlackUser(id=BOT_ID, name=BOT_NAME, is_bot=True)
        return SlackUser(id=user_id, name="alice")

    slack = MagicMock(spec=SlackGateway)
    slack.get_user = AsyncMock(side_effect=get_user)
    slack.is_bot = AsyncMock(return_value=False)
    slack.post_message = AsyncMock(return_value=REPLY_TS)
    slack.update_message = AsyncMock(return_value=None)
    return slack


@pytest.fixture
def mock_playground():
    """PlaygroundClient that evaluates a couple of known snippets."""
    outputs = {"1+1": "2", "2+2": "4"}

    async def run(snippet: str) -> PlaygroundResult:
        return PlaygroundResult(output=outputs.get(snippet, ""))

    playground = MagicMock(spec=PlaygroundClient)
    playground.run = AsyncMock(side_effect=run)
    return playground


@pytest.fixture
def make_message():
    """Factory for a plain Slack message event."""

    def _make(text: str, ts: str = ORIGINAL_TS, user: str = "UALICE", channel: str = CHANNEL) -> MessageEvent:
        return MessageEvent.from_slack({
            "type": "message",
            "channel": channel,
            "user": user,
            "text": text,
            "ts": ts,
        })

    return _make


@pytest.fixture
def make_edit():
    """Factory for a `message_changed` event editing the message at `original_ts`."""

    def _make(text: str, original_ts: str = ORIGINAL_TS, channel: str = CHANNEL) -> MessageEvent:
        return MessageEvent.from_slack({
            "type": "message",
            "subtype": "message_changed",
            "channel": channel,
            "ts": "1700000050.000300",
            "hidden": True,
            "message": {
                "type": "message",
                "user": "UALICE",
                "text": text,
                "ts": original_ts,
                "edited": {"user": "UALICE", "ts": "1700000050.000000"},
            },
            "previous_message": {"type": "message", "user": "UALICE", "text": "old", "ts": original_ts},
        })

    return _make
