from __future__ import annotations

import logging
from typing import Any

from langchain_core.runnables import RunnableConfig
from langsmith import traceable

from feedrelay.graph.state import RelayContext, RelayState, get_context
from feedrelay.schemas.notification import ErrorCategory, ErrorEvent, Severity
from feedrelay.schemas.state import RunState
from feedrelay.services.reconciliation import advance_feed_state, select_new_items

logger = logging.getLogger(__name__)


@traceable(name="reconcile_feeds_node")
async def reconcile_feeds_node(state: RelayState, config: RunnableConfig) -> RelayState:
    context = get_context(config)
    checkpoint = RunState.from_document(state["checkpoint"])

    results: list[dict[str, Any]] = []
    errors = list(state.get("errors", []))
    for feed_id in state.get("feed_ids", []):
        result = await reconcile_feed(context, checkpoint, feed_id)
        results.append(result)
        if result.get("error"):
            errors.append(f"{feed_id}: {result['error']}")

    next_state: RelayState = dict(state)
    next_state["checkpoint"] = checkpoint.to_document()
    next_state["feed_results"] = results
    next_state["errors"] = errors

    delivered = sum(result.get("delivered", 0) for result in results)
    logger.info("Reconciliation complete: %s feeds, %s items delivered", len(results), delivered)
    return next_state


async def reconcile_feed(context: RelayContext, checkpoint: RunState, feed_id: str) -> dict[str, Any]:
    """Process one feed and update ``checkpoint.feeds`` in place on success.

    Never raises: fetch, processing and delivery failures are reported and
    returned as part of the result so the remaining feeds still run.
    """
    try:
        parsed = await context.feed_source.parse(feed_id)
    except Exception as exc:
        logger.error("Failed to fetch or parse feed %s: %s", feed_id, exc)
        if not context.suppress_feed_error_notifications:
            await context.notifier.report_error(
                ErrorEvent(
                    category=ErrorCategory.FEED_PROCESSING,
                    message=f"Failed to fetch or parse feed: {exc}",
                    severity=Severity.MEDIUM,
                    feed_id=feed_id,
                )
            )
        return {"feed_id": feed_id, "status": "fetch_failed", "delivered": 0, "error": str(exc)}

    feed_state = checkpoint.feeds.get(feed_id)
    try:
        selection = select_new_items(
            parsed.items,
            feed_state,
            checkpoint.last_checked_at,
            limit=context.max_items_per_feed,
        )
    except Exception as exc:
        logger.exception("Failed to process items for %s", feed_id)
        await context.notifier.report_error(
            ErrorEvent(
                category=ErrorCategory.FEED_PROCESSING,
                message=f"Failed to process feed items: {exc}",
                severity=Severity.MEDIUM,
                feed_id=feed_id,
            )
        )
        return {"feed_id": feed_id, "status": "processing_failed", "delivered": 0, "error": str(exc)}

    if not selection.items:
        logger.info("No new items for %s", feed_id)
        return {"feed_id": feed_id, "status": "no_new_items", "delivered": 0}

    if selection.first_run:
        logger.info("First run for %s, sending latest item only: %s", feed_id, selection.items[0].title)
    if selection.deferred:
        logger.info("Deferring %s items of %s to the next run", selection.deferred, feed_id)

    try:
        await context.notifier.deliver(selection.items)
    except Exception as exc:
        logger.error("Failed to deliver items for %s: %s", feed_id, exc)
        await context.notifier.report_error(
            ErrorEvent(
                category=ErrorCategory.NOTIFICATION_DELIVERY,
                message=f"Failed to send items to Discord: {exc}",
                severity=Severity.MEDIUM,
                feed_id=feed_id,
                details={"items": len(selection.items)},
            )
        )
        return {"feed_id": feed_id, "status": "delivery_failed", "delivered": 0, "error": str(exc)}

    checkpoint.feeds[feed_id] = advance_feed_state(selection.items, feed_state)
    logger.info("Delivered %s items for %s", len(selection.items), feed_id)
    return {
        "feed_id": feed_id,
        "status": "delivered",
        "delivered": len(selection.items),
        "deferred": selection.deferred,
        "first_run": selection.first_run,
        "last_item_id": selection.items[-1].id,
    }
