from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from feedrelay.errors import DeliveryError, NotificationError, TransportError
from feedrelay.schemas.feed import FeedItem
from feedrelay.schemas.notification import ErrorEvent, Severity
from feedrelay.services.http_client import HttpClient

logger = logging.getLogger(__name__)

DISCORD_EMBED_LIMIT = 10
DISCORD_TITLE_LIMIT = 256
DISCORD_DESCRIPTION_LIMIT = 4096
DISCORD_FIELD_VALUE_LIMIT = 1024
DEFAULT_WEBHOOK_TIMEOUT_SECONDS = 10.0

ITEM_COLOR = 0x00FF00

SEVERITY_STYLES: dict[Severity, tuple[int, str]] = {
    Severity.LOW: (0x3498DB, "ℹ️"),
    Severity.MEDIUM: (0xFFFF00, "⚠️"),
    Severity.HIGH: (0xFF0000, "\U0001f6a8"),
    Severity.CRITICAL: (0x8B0000, "\U0001f525"),
}


def _truncate_text(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    if limit <= 3:
        return value[:limit]
    return value[: limit - 3].rstrip() + "..."


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def chunk_embeds(embeds: list[dict[str, Any]], size: int = DISCORD_EMBED_LIMIT) -> list[list[dict[str, Any]]]:
    return [embeds[index : index + size] for index in range(0, len(embeds), size)]


def build_item_embed(item: FeedItem, include_timestamp: bool = True) -> dict[str, Any]:
    lines: list[str] = []
    # Skipped when the guid is just the permalink.
    if item.id and item.id != item.link:
        lines.append(f"ID: {item.id}")
    if include_timestamp:
        lines.append(f"Published: {format_timestamp(item.published_at)}")

    embed: dict[str, Any] = {
        "title": _truncate_text(item.title, DISCORD_TITLE_LIMIT),
        "url": item.link,
        "color": ITEM_COLOR,
    }
    if lines:
        embed["description"] = _truncate_text("\n".join(lines), DISCORD_DESCRIPTION_LIMIT)
    if include_timestamp:
        embed["timestamp"] = item.published_at.astimezone(timezone.utc).isoformat()
    if item.author:
        embed["author"] = {"name": _truncate_text(item.author, DISCORD_TITLE_LIMIT)}
    return embed


def build_error_embed(event: ErrorEvent, now: datetime | None = None) -> dict[str, Any]:
    color, marker = SEVERITY_STYLES[event.severity]
    reported_at = now or datetime.now(timezone.utc)

    fields: list[dict[str, Any]] = [
        {"name": "Feed URL", "value": event.feed_id or "N/A", "inline": False},
        {"name": "Severity", "value": event.severity.value, "inline": True},
        {"name": "Timestamp", "value": reported_at.isoformat(), "inline": True},
    ]
    for key, value in (event.details or {}).items():
        rendered = value if isinstance(value, str) else json.dumps(value, default=str)
        fields.append(
            {"name": str(key), "value": _truncate_text(rendered, DISCORD_FIELD_VALUE_LIMIT), "inline": False}
        )

    return {
        "title": _truncate_text(f"{marker} Error: {event.category.value}", DISCORD_TITLE_LIMIT),
        "description": _truncate_text(event.message, DISCORD_DESCRIPTION_LIMIT),
        "color": color,
        "fields": fields,
    }


class DiscordNotifier:
    """Posts feed items and error reports to Discord webhooks.

    Items go to ``webhook_url`` in batches of at most ten embeds. Error
    reports go to ``error_webhook_url`` when one is configured.
    """

    def __init__(
        self,
        http_client: HttpClient,
        webhook_url: str,
        error_webhook_url: str | None = None,
        username: str | None = None,
        avatar_url: str | None = None,
        include_timestamp: bool = True,
        timeout_seconds: float = DEFAULT_WEBHOOK_TIMEOUT_SECONDS,
        dry_run: bool = False,
    ) -> None:
        self.http_client = http_client
        self.webhook_url = webhook_url
        self.error_webhook_url = error_webhook_url or webhook_url
        self.username = username
        self.avatar_url = avatar_url
        self.include_timestamp = include_timestamp
        self.timeout_seconds = timeout_seconds
        self.dry_run = dry_run

    def build_payload(self, embeds: list[dict[str, Any]]) -> dict[str, Any]:
        payload: dict[str, Any] = {"embeds": embeds}
        if self.username:
            payload["username"] = self.username
        if self.avatar_url:
            payload["avatar_url"] = self.avatar_url
        return payload

    async def deliver(self, items: list[FeedItem]) -> None:
        embeds = [build_item_embed(item, include_timestamp=self.include_timestamp) for item in items]
        await self.send_embeds(embeds)

    async def send_embeds(self, embeds: list[dict[str, Any]]) -> None:
        batches = chunk_embeds(embeds)
        for index, batch in enumerate(batches, start=1):
            try:
                await self._post(self.webhook_url, self.build_payload(batch))
            except TransportError as exc:
                raise DeliveryError(f"Batch {index}/{len(batches)} failed: {exc}") from exc
            logger.debug("Sent batch %s/%s with %s embeds", index, len(batches), len(batch))

    async def report_error(self, event: ErrorEvent) -> None:
        logger.info("Sending error notification: %s", event.category.value)
        try:
            await self.send_error_embed(build_error_embed(event))
        except NotificationError as exc:
            # Never re-raised: a broken error channel must not fail the run.
            logger.error("Failed to send error notification (%s): %s", event.category.value, exc)

    async def send_error_embed(self, embed: dict[str, Any]) -> None:
        try:
            await self._post(self.error_webhook_url, self.build_payload([embed]))
        except TransportError as exc:
            raise NotificationError(str(exc)) from exc

    async def _post(self, url: str, payload: dict[str, Any]) -> None:
        if self.dry_run:
            logger.info("Dry run, not posting to webhook: %s", json.dumps(payload, ensure_ascii=False))
            return
        await self.http_client.post_json(url, payload, timeout_seconds=self.timeout_seconds)
