from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from feedrelay.config import Settings, configure_langsmith_env, get_settings
from feedrelay.engine import ReconciliationEngine
from feedrelay.errors import CheckpointLoadError, CheckpointSaveError
from feedrelay.logging import setup_logging
from feedrelay.services.checkpoint_store import CheckpointStore, JsonFileCheckpointStore, ReadThroughCheckpointStore
from feedrelay.services.discord_notifier import DiscordNotifier
from feedrelay.services.feed_source import FeedSource
from feedrelay.services.http_client import HttpClient

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Forward new feed items to a Discord webhook")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Poll every feed once")
    run_parser.add_argument("--dry-run", action="store_true", help="Log webhook payloads and keep the state file untouched")
    run_parser.add_argument("--feed", action="append", default=None, help="Feed URL to poll (repeatable, overrides config)")
    run_parser.add_argument("--verbose", action="store_true", help="Enable debug logs")

    state_parser = subparsers.add_parser("state", help="Print the stored checkpoint")
    state_parser.add_argument("--verbose", action="store_true", help="Enable debug logs")

    return parser


def build_engine(settings: Settings, store: CheckpointStore, dry_run: bool) -> ReconciliationEngine:
    http_client = HttpClient(
        timeout_seconds=settings.request_timeout_seconds,
        retries=settings.request_retries,
        retry_delay_seconds=settings.retry_delay_seconds,
        user_agent=settings.user_agent,
    )
    notifier = DiscordNotifier(
        http_client,
        webhook_url=settings.discord_webhook_url or "",
        error_webhook_url=settings.error_webhook_url,
        username=settings.discord_username,
        avatar_url=settings.discord_avatar_url,
        timeout_seconds=settings.webhook_timeout_seconds,
        dry_run=dry_run,
    )
    return ReconciliationEngine(
        store=store,
        feed_source=FeedSource(http_client),
        notifier=notifier,
        max_items_per_feed=settings.max_items_per_feed,
        suppress_feed_error_notifications=settings.suppress_feed_error_notifications,
    )


async def run_relay(args: argparse.Namespace) -> int:
    settings = get_settings()
    configure_langsmith_env(settings)
    dry_run = bool(args.dry_run)

    missing_fields = settings.missing_required_runtime_fields(dry_run=dry_run)
    if missing_fields:
        joined = ", ".join(missing_fields)
        logger.error("Configuration error: missing required .env values: %s", joined)
        print(f"Configuration error: missing required .env values: {joined}")
        return 2

    feed_urls = args.feed or settings.resolve_feed_urls()
    if not feed_urls:
        logger.error("Configuration error: no feeds configured (FEED_URLS or %s)", settings.feeds_file)
        print("Configuration error: no feeds configured")
        return 2

    store: CheckpointStore = JsonFileCheckpointStore(Path(settings.state_file))
    try:
        if dry_run:
            store = ReadThroughCheckpointStore(store)
        engine = build_engine(settings, store, dry_run=dry_run)
        report = await engine.run(feed_urls)
    except (CheckpointLoadError, CheckpointSaveError) as exc:
        logger.error("Run failed: %s", exc)
        print(f"Run failed: {exc}")
        return 1

    failed = report.failed_feeds
    logger.info(
        "Run complete | feeds=%s delivered=%s failed_feeds=%s dry_run=%s",
        len(report.feed_results),
        report.delivered_count,
        len(failed),
        dry_run,
    )
    if report.errors:
        logger.warning("Non-fatal errors captured: %s", len(report.errors))

    print(
        f"Run complete. feeds={len(report.feed_results)} delivered={report.delivered_count} "
        f"failed_feeds={len(failed)} dry_run={dry_run}"
    )
    return 0


async def show_state() -> int:
    settings = get_settings()
    checkpoint = await JsonFileCheckpointStore(Path(settings.state_file)).load()
    print(json.dumps(checkpoint.to_document(), indent=2, ensure_ascii=False))
    return 0


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if args.command not in {"run", "state"}:
        parser.print_help()
        return

    setup_logging(verbose=bool(args.verbose))
    if args.command == "state":
        exit_code = asyncio.run(show_state())
    else:
        exit_code = asyncio.run(run_relay(args))
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
