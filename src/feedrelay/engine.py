from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable
from uuid import uuid4

from feedrelay.graph.state import RelayContext, RelayState, utc_now
from feedrelay.graph.workflow import build_workflow
from feedrelay.protocols import CheckpointStoreProtocol, FeedSourceProtocol, NotifierProtocol
from feedrelay.services.reconciliation import MAX_ITEMS_PER_FEED

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    run_id: str
    feed_results: list[dict[str, Any]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def delivered_count(self) -> int:
        return sum(result.get("delivered", 0) for result in self.feed_results)

    @property
    def failed_feeds(self) -> list[str]:
        return [result["feed_id"] for result in self.feed_results if result.get("error")]


class ReconciliationEngine:
    """Runs one polling pass over a list of feeds.

    Feeds are processed one after another. A feed whose fetch or delivery
    fails is reported and keeps its previous checkpoint; only a failure to
    load or save the checkpoint document makes :meth:`run` raise.
    """

    def __init__(
        self,
        store: CheckpointStoreProtocol,
        feed_source: FeedSourceProtocol,
        notifier: NotifierProtocol,
        max_items_per_feed: int = MAX_ITEMS_PER_FEED,
        suppress_feed_error_notifications: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.context = RelayContext(
            store=store,
            feed_source=feed_source,
            notifier=notifier,
            max_items_per_feed=max_items_per_feed,
            suppress_feed_error_notifications=suppress_feed_error_notifications,
            clock=clock,
        )
        self.workflow = build_workflow()

    async def run(self, feed_ids: list[str]) -> RunReport:
        if not feed_ids:
            raise ValueError("feed_ids must be provided.")

        initial_state: RelayState = {
            "run_id": str(uuid4()),
            "started_at": self.context.clock().isoformat(),
            "feed_ids": list(feed_ids),
            "errors": [],
        }
        logger.info("Starting run %s over %s feeds", initial_state["run_id"], len(feed_ids))

        final_state = await self.workflow.ainvoke(
            initial_state,
            config={"configurable": {"relay": self.context}},
        )

        return RunReport(
            run_id=final_state["run_id"],
            feed_results=list(final_state.get("feed_results", [])),
            errors=list(final_state.get("errors", [])),
        )
