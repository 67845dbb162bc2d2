from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from feedrelay.schemas.state import ensure_utc


class FeedType(str, Enum):
    RSS = "rss"
    ATOM = "atom"


class FeedItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    link: str
    published_at: datetime
    author: str | None = None
    description: str | None = None
    feed_id: str

    @field_validator("published_at")
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class FeedParseResult(BaseModel):
    type: FeedType
    items: list[FeedItem] = Field(default_factory=list)
    title: str
    link: str
    description: str | None = None


class FeedConfig(BaseModel):
    url: str
    name: str | None = None


class FeedsFile(BaseModel):
    feeds: list[FeedConfig] = Field(default_factory=list)
