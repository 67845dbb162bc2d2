from __future__ import annotations

import logging

from langchain_core.runnables import RunnableConfig
from langsmith import traceable

from feedrelay.graph.state import RelayState, get_context
from feedrelay.schemas.notification import ErrorCategory, ErrorEvent, Severity
from feedrelay.schemas.state import RunState

logger = logging.getLogger(__name__)


@traceable(name="load_checkpoint_node")
async def load_checkpoint_node(state: RelayState, config: RunnableConfig) -> RelayState:
    context = get_context(config)

    try:
        checkpoint = await context.store.load()
    except Exception as exc:
        logger.error("Failed to load state: %s", exc)
        await context.notifier.report_error(
            ErrorEvent(
                category=ErrorCategory.STATE_MANAGEMENT,
                message=f"Failed to load state: {exc}",
                severity=Severity.CRITICAL,
            )
        )
        raise

    next_state: RelayState = dict(state)
    next_state["checkpoint"] = checkpoint.to_document()

    logger.info(
        "Checkpoint loaded: last checked %s, %s known feeds",
        checkpoint.last_checked_at.isoformat(),
        len(checkpoint.feeds),
    )
    return next_state


@traceable(name="save_checkpoint_node")
async def save_checkpoint_node(state: RelayState, config: RunnableConfig) -> RelayState:
    context = get_context(config)

    checkpoint = RunState.from_document(state["checkpoint"])
    # Liveness marker only; it never moves backwards even if the clock does.
    checkpoint.last_checked_at = max(context.clock(), checkpoint.last_checked_at)

    try:
        await context.store.save(checkpoint)
    except Exception as exc:
        logger.error("Failed to save state: %s", exc)
        await context.notifier.report_error(
            ErrorEvent(
                category=ErrorCategory.STATE_MANAGEMENT,
                message=f"Failed to save state: {exc}",
                severity=Severity.CRITICAL,
            )
        )
        raise

    next_state: RelayState = dict(state)
    next_state["checkpoint"] = checkpoint.to_document()
    return next_state
