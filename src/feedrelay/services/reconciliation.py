from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from feedrelay.schemas.feed import FeedItem
from feedrelay.schemas.state import FeedState

MAX_ITEMS_PER_FEED = 10


@dataclass(frozen=True)
class Selection:
    items: list[FeedItem]
    first_run: bool
    baseline: datetime
    deferred: int = 0


def select_new_items(
    items: list[FeedItem],
    feed_state: FeedState | None,
    global_last_checked_at: datetime,
    limit: int = MAX_ITEMS_PER_FEED,
) -> Selection:
    """Pick the items of one feed that should be delivered this run.

    A feed without a FeedState yields only its newest item. Otherwise every
    item published strictly after the baseline is returned oldest first,
    capped at ``limit``; the rest are left for later runs. Sorting is stable,
    so items sharing a publish time keep their fetch order.
    """
    baseline = feed_state.last_checked_at if feed_state is not None else global_last_checked_at

    if feed_state is None:
        newest_first = sorted(items, key=lambda item: item.published_at, reverse=True)
        return Selection(items=newest_first[:1], first_run=True, baseline=baseline)

    fresh = [item for item in items if item.published_at > baseline]
    fresh.sort(key=lambda item: item.published_at)
    selected = fresh[:limit]
    return Selection(
        items=selected,
        first_run=False,
        baseline=baseline,
        deferred=len(fresh) - len(selected),
    )


def advance_feed_state(delivered: list[FeedItem], prior: FeedState | None = None) -> FeedState:
    """Checkpoint for a feed after ``delivered`` went out, oldest first.

    Extra keys stored on ``prior`` are carried over unchanged.
    """
    last = delivered[-1]
    if prior is None:
        return FeedState(last_checked_at=last.published_at, last_item_id=last.id)
    return prior.model_copy(update={"last_checked_at": last.published_at, "last_item_id": last.id})
