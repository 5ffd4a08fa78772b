"""Pipeline orchestrator — wires an event source into the two stages.

    event source -> inbound queue -> FilterStage -> accepted queue -> CompileStage

Both queues are unbounded: enqueueing never blocks event reception, at the
cost of unbounded memory growth if the compile service falls behind.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Protocol

import structlog

from playbot.cache import ReplyCache
from playbot.config import Settings
from playbot.context import RequestContext
from playbot.errors import InvalidAuthError
from playbot.events import InboundEvent, InvalidAuthEvent, MessageEvent, TransportErrorEvent
from playbot.pipeline.compile_stage import CompileStage
from playbot.pipeline.filter_stage import FilterStage
from playbot.playground import PlaygroundClient
from playbot.slack import SlackGateway

logger = structlog.get_logger()


class EventSource(Protocol):
    def events(self) -> AsyncIterator[InboundEvent]: ...


class Pipeline:
    """Owns the queues and the stage workers."""

    def __init__(
        self,
        settings: Settings,
        slack: SlackGateway,
        playground: PlaygroundClient,
        cache: ReplyCache,
    ):
        self.settings = settings
        self.inbound: asyncio.Queue[RequestContext] = asyncio.Queue()
        self.accepted: asyncio.Queue[RequestContext] = asyncio.Queue()
        self.filter_stage = FilterStage(self.inbound, self.accepted, slack)
        self.compile_stage = CompileStage(self.accepted, slack, playground, cache)
        self._workers: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._workers)

    def start(self):
        if self.running:
            return
        self._workers = [
            asyncio.create_task(self.filter_stage.run(), name="filter_stage"),
            asyncio.create_task(self.compile_stage.run(), name="compile_stage"),
        ]
        logger.info("pipeline_started")

    async def stop(self):
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        stats = self.compile_stage.cache.describe()
        logger.info(
            "pipeline_stopped",
            cache_size=stats.size,
            cache_hits=stats.hits,
            cache_misses=stats.misses,
            cache_evictions=stats.evictions,
        )

    async def join(self):
        """Wait until every queued context has gone through both stages."""
        await self.inbound.join()
        await self.accepted.join()

    def submit(self, event: MessageEvent) -> RequestContext:
        """Wrap a message event and enqueue it without waiting."""
        ctx = RequestContext.from_event(event, self.settings)
        self.inbound.put_nowait(ctx)
        return ctx

    async def run(self, source: EventSource):
        """Feed events from `source` into the pipeline until it ends.

        Raises:
            InvalidAuthError: the source reported rejected credentials.
        """
        self.start()
        try:
            async for event in source.events():
                if isinstance(event, MessageEvent):
                    self.submit(event)
                elif isinstance(event, TransportErrorEvent):
                    logger.warning("event_source_error", error=event.detail)
                elif isinstance(event, InvalidAuthEvent):
                    logger.error("invalid_credentials", error=event.detail)
                    raise InvalidAuthError(event.detail)
            # Source exhausted: let queued work finish
            await self.join()
        finally:
            await self.stop()
