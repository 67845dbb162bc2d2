from __future__ import annotations

from typing import Protocol

from feedrelay.schemas.feed import FeedItem, FeedParseResult
from feedrelay.schemas.notification import ErrorEvent
from feedrelay.schemas.state import RunState


class FeedSourceProtocol(Protocol):
    async def parse(self, feed_id: str) -> FeedParseResult: ...


class NotifierProtocol(Protocol):
    async def deliver(self, items: list[FeedItem]) -> None: ...

    async def report_error(self, event: ErrorEvent) -> None: ...


class CheckpointStoreProtocol(Protocol):
    async def load(self) -> RunState: ...

    async def save(self, state: RunState) -> None: ...
