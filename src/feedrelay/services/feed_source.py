from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

import feedparser
from bs4 import BeautifulSoup

from feedrelay.errors import FeedFetchError, TransportError
from feedrelay.schemas.feed import FeedItem, FeedParseResult, FeedType
from feedrelay.services.http_client import HttpClient, is_valid_url

logger = logging.getLogger(__name__)


def parse_entry_datetime(entry: dict[str, Any]) -> datetime | None:
    parsed_struct = entry.get("published_parsed") or entry.get("updated_parsed")
    if parsed_struct is not None:
        try:
            return datetime(
                parsed_struct.tm_year,
                parsed_struct.tm_mon,
                parsed_struct.tm_mday,
                parsed_struct.tm_hour,
                parsed_struct.tm_min,
                parsed_struct.tm_sec,
                tzinfo=timezone.utc,
            )
        except (TypeError, ValueError):
            pass

    date_text = entry.get("published") or entry.get("updated")
    if not date_text:
        return None
    try:
        parsed = parsedate_to_datetime(str(date_text))
    except (TypeError, ValueError):
        return None
    return parsed.astimezone(timezone.utc) if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def build_item_id(title: str, link: str) -> str:
    payload = f"{title.strip()}|{link.strip()}".encode("utf-8", errors="ignore")
    return hashlib.sha256(payload).hexdigest()[:24]


def clean_description(raw: str | None) -> str | None:
    if not raw or not raw.strip():
        return None
    text = BeautifulSoup(raw, "lxml").get_text(" ", strip=True)
    return " ".join(text.split()) or None


def detect_feed_type(version: str) -> FeedType | None:
    if version.startswith("atom"):
        return FeedType.ATOM
    if version.startswith("rss"):
        return FeedType.RSS
    return None


def normalize_entry(entry: dict[str, Any], feed_id: str) -> FeedItem | None:
    """Build a FeedItem from a parsed entry, or None when title, link or date is missing."""
    title = str(entry.get("title") or "").strip()
    link = str(entry.get("link") or "").strip()
    published_at = parse_entry_datetime(entry)
    if not title or not link or published_at is None:
        return None

    native_id = str(entry.get("id") or "").strip()
    author = str(entry.get("author") or "").strip() or None

    return FeedItem(
        id=native_id or build_item_id(title, link),
        title=title,
        link=link,
        published_at=published_at,
        author=author,
        description=clean_description(entry.get("summary") or entry.get("description")),
        feed_id=feed_id,
    )


class FeedSource:
    def __init__(self, http_client: HttpClient) -> None:
        self.http_client = http_client

    async def parse(self, feed_id: str) -> FeedParseResult:
        if not is_valid_url(feed_id):
            raise FeedFetchError(f"Invalid feed URL: {feed_id}", feed_id=feed_id)

        try:
            response = await self.http_client.get(feed_id)
        except TransportError as exc:
            raise FeedFetchError(str(exc), feed_id=feed_id) from exc

        return self.parse_document(response.text, feed_id)

    def parse_document(self, document: str, feed_id: str) -> FeedParseResult:
        parsed = feedparser.parse(document)
        feed_type = detect_feed_type(str(parsed.get("version") or ""))
        if feed_type is None:
            raise FeedFetchError(f"Unsupported feed format for URL: {feed_id}", feed_id=feed_id)

        items: list[FeedItem] = []
        for raw_entry in parsed.entries:
            entry = dict(raw_entry)
            item = normalize_entry(entry, feed_id)
            if item is None:
                logger.warning(
                    "Skipping malformed %s entry in %s: %s",
                    feed_type.value,
                    feed_id,
                    entry.get("title") or entry.get("link") or "<untitled>",
                )
                continue
            items.append(item)

        feed_info = parsed.feed
        logger.info("Parsed %s %s items from %s", len(items), feed_type.value, feed_id)
        return FeedParseResult(
            type=feed_type,
            items=items,
            title=str(feed_info.get("title") or f"Unknown {feed_type.value.upper()} Feed"),
            link=str(feed_info.get("link") or feed_id),
            description=clean_description(feed_info.get("subtitle") or feed_info.get("description")),
        )
