"""playbot entry point.

Usage:
    python -m playbot.main

Requires:
    SLACK_BOT_TOKEN — bot token (xoxb-...) for the Web API
    SLACK_APP_TOKEN — app-level token (xapp-...) for Socket Mode
    BOT_NAME        — the bot's Slack user name, as mentioned in requests

Optional: PLAYGROUND_HOST, DEBUG, CACHE_SIZE, GOIMPORTS_BIN, HTTP_TIMEOUT
(see playbot/config.py). Values may also come from .env or playbot.json.

Slack app scopes required:
    - channels:history / groups:history (message events)
    - users:read
    - chat:write
"""

from __future__ import annotations

import asyncio
import sys

import structlog
from dotenv import load_dotenv
from pydantic import ValidationError
from slack_sdk.web.async_client import AsyncWebClient

load_dotenv()  # Load .env file from project root

from playbot.cache import ReplyCache
from playbot.config import Settings, load_settings
from playbot.errors import InvalidAuthError
from playbot.logs import configure_logging
from playbot.pipeline import Pipeline
from playbot.playground import PlaygroundClient
from playbot.slack import SlackEventSource, SlackGateway

logger = structlog.get_logger()


def build_pipeline(settings: Settings, web_client: AsyncWebClient) -> Pipeline:
    """Wire the collaborators and the pipeline from settings."""
    slack = SlackGateway(web_client, settings.BOT_NAME)
    playground = PlaygroundClient(
        settings.PLAYGROUND_HOST,
        goimports_bin=settings.GOIMPORTS_BIN,
        timeout=settings.HTTP_TIMEOUT,
    )
    cache = ReplyCache(settings.CACHE_SIZE)
    return Pipeline(settings, slack, playground, cache)


async def main() -> int:
    try:
        settings = load_settings()
    except ValidationError as e:
        configure_logging()
        logger.error("invalid_config", error=str(e))
        return 1

    configure_logging(settings.DEBUG)

    if not settings.SLACK_BOT_TOKEN or not settings.SLACK_APP_TOKEN:
        logger.error("SLACK_BOT_TOKEN and SLACK_APP_TOKEN must be set")
        return 1

    web_client = AsyncWebClient(token=settings.SLACK_BOT_TOKEN)
    pipeline = build_pipeline(settings, web_client)
    source = SlackEventSource(settings.SLACK_APP_TOKEN, web_client)

    logger.info(
        "bot_starting",
        bot_name=settings.BOT_NAME,
        playground=settings.PLAYGROUND_HOST,
        cache_size=settings.CACHE_SIZE,
    )

    try:
        await pipeline.run(source)
    except InvalidAuthError:
        return 1
    finally:
        logger.info("bot_shutdown")
    return 0


def run():
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
