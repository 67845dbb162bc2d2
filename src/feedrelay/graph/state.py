from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, TypedDict

from feedrelay.protocols import CheckpointStoreProtocol, FeedSourceProtocol, NotifierProtocol
from feedrelay.services.reconciliation import MAX_ITEMS_PER_FEED


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RelayState(TypedDict, total=False):
    run_id: str
    started_at: str
    feed_ids: list[str]
    checkpoint: dict[str, Any]
    feed_results: list[dict[str, Any]]
    errors: list[str]


@dataclass
class RelayContext:
    """Collaborators for one run, handed to every node through the run config."""

    store: CheckpointStoreProtocol
    feed_source: FeedSourceProtocol
    notifier: NotifierProtocol
    max_items_per_feed: int = MAX_ITEMS_PER_FEED
    suppress_feed_error_notifications: bool = False
    clock: Callable[[], datetime] = field(default=utc_now)


def get_context(config: Any) -> RelayContext:
    return config["configurable"]["relay"]
