"""Slack adapters: Web API gateway and Socket Mode event source.

SlackGateway wraps the calls the pipeline makes (user lookups, posting,
updating) and translates Slack SDK failures into playbot errors.

SlackEventSource turns Socket Mode traffic into InboundEvent variants. A
rejected token surfaces as InvalidAuthEvent; websocket trouble as
TransportErrorEvent. The initial connect is retried with a capped backoff;
reconnection after that is left to the SDK.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass

import aiohttp
import structlog
from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.socket_mode.aiohttp import SocketModeClient
from slack_sdk.socket_mode.request import SocketModeRequest
from slack_sdk.socket_mode.response import SocketModeResponse
from slack_sdk.web.async_client import AsyncWebClient

from playbot.errors import TransportError, UserLookupError
from playbot.events import InboundEvent, InvalidAuthEvent, MessageEvent, TransportErrorEvent

logger = structlog.get_logger()

AUTH_ERRORS = frozenset({"invalid_auth", "not_authed", "account_inactive", "token_revoked"})

# Seconds to wait between Socket Mode connect attempts; the last value repeats
CONNECT_RETRY_DELAYS = (1.0, 2.0, 5.0, 10.0, 30.0)

_REMOTE_ERRORS = (SlackClientError, aiohttp.ClientError, asyncio.TimeoutError)


def _api_error(exc: Exception) -> str:
    if isinstance(exc, SlackApiError):
        return str(exc.response.get("error", "")) or str(exc)
    return str(exc) or type(exc).__name__


@dataclass(frozen=True)
class SlackUser:
    id: str
    name: str
    is_bot: bool = False


class SlackGateway:
    """Identity lookups and message posting over the Slack Web API."""

    def __init__(self, client: AsyncWebClient, bot_name: str):
        self.client = client
        self.bot_name = bot_name

    async def get_user(self, user_id: str) -> SlackUser:
        """Resolve a user ID to its Slack profile.

        Raises:
            UserLookupError: the lookup failed for any reason.
        """
        if not user_id:
            raise UserLookupError(user_id, "no user id")
        try:
            resp = await self.client.users_info(user=user_id)
        except _REMOTE_ERRORS as e:
            raise UserLookupError(user_id, _api_error(e)) from e

        user = resp.get("user") or {}
        return SlackUser(
            id=user.get("id", user_id),
            name=user.get("name", ""),
            is_bot=bool(user.get("is_bot", False)),
        )

    async def is_bot(self, user_id: str) -> bool:
        user = await self.get_user(user_id)
        return user.is_bot

    async def post_message(self, channel: str, text: str) -> str:
        """Post a new message as the bot. Returns the posted message's ts.

        Raises:
            TransportError: Slack rejected the post or could not be reached.
        """
        try:
            resp = await self.client.chat_postMessage(
                channel=channel,
                text=text,
                username=self.bot_name,
                as_user=True,
            )
        except _REMOTE_ERRORS as e:
            raise TransportError(f"chat.postMessage failed: {_api_error(e)}") from e
        return resp["ts"]

    async def update_message(self, channel: str, ts: str, text: str) -> None:
        """Replace the text of a message we posted earlier.

        Raises:
            TransportError: Slack rejected the update or could not be reached.
        """
        try:
            await self.client.chat_update(channel=channel, ts=ts, text=text)
        except _REMOTE_ERRORS as e:
            raise TransportError(f"chat.update failed: {_api_error(e)}") from e


class SlackEventSource:
    """Yields inbound events received over Slack Socket Mode."""

    def __init__(
        self,
        app_token: str,
        web_client: AsyncWebClient,
        socket_client: SocketModeClient | None = None,
        retry_delays: tuple[float, ...] = CONNECT_RETRY_DELAYS,
    ):
        self.web_client = web_client
        self.retry_delays = retry_delays or (0.0,)
        self.socket_client = socket_client or SocketModeClient(
            app_token=app_token,
            web_client=web_client,
        )
        self._events: asyncio.Queue[InboundEvent] = asyncio.Queue()

    async def _on_request(self, client: SocketModeClient, req: SocketModeRequest) -> None:
        # Ack first, Slack redelivers anything left unacknowledged
        await client.send_socket_mode_response(SocketModeResponse(envelope_id=req.envelope_id))

        if req.type != "events_api":
            return
        event = (req.payload or {}).get("event") or {}
        if event.get("type") != "message":
            return
        self._events.put_nowait(MessageEvent.from_slack(event))

    async def _on_error(self, message: aiohttp.WSMessage) -> None:
        self._events.put_nowait(TransportErrorEvent(detail=str(message.data)))

    async def _check_auth(self) -> InboundEvent | None:
        try:
            auth = await self.web_client.auth_test()
        except _REMOTE_ERRORS as e:
            detail = _api_error(e)
            if detail in AUTH_ERRORS:
                return InvalidAuthEvent(detail=detail)
            return TransportErrorEvent(detail=detail)

        logger.info("slack_authenticated", user=auth.get("user"), team=auth.get("team"))
        return None

    async def events(self) -> AsyncIterator[InboundEvent]:
        problem = await self._check_auth()
        if problem is not None:
            yield problem
            if isinstance(problem, InvalidAuthEvent):
                return

        self.socket_client.socket_mode_request_listeners.append(self._on_request)
        self.socket_client.on_error_listeners.append(self._on_error)

        attempt = 0
        while True:
            try:
                await self.socket_client.connect()
                break
            except _REMOTE_ERRORS as e:
                detail = _api_error(e)
                if detail in AUTH_ERRORS:
                    yield InvalidAuthEvent(detail=detail)
                    return

            delay = self.retry_delays[min(attempt, len(self.retry_delays) - 1)]
            attempt += 1
            logger.warning("socket_mode_connect_failed", error=detail, attempt=attempt, retry_in=delay)
            yield TransportErrorEvent(detail=f"socket mode connect failed: {detail}")
            await asyncio.sleep(delay)

        logger.info("socket_mode_connected", attempts=attempt + 1)
        try:
            while True:
                yield await self._events.get()
        finally:
            await self.socket_client.close()
