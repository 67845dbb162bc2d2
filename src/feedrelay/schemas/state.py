from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class FeedState(BaseModel):
    """Progress marker for one feed.

    ``last_checked_at`` is the publish time of the last item delivered for the
    feed, never the wall-clock time of the run.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    last_checked_at: datetime = Field(alias="lastCheckedAt")
    last_item_id: str | None = Field(default=None, alias="lastItemId")

    @field_validator("last_checked_at")
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class RunState(BaseModel):
    """The single checkpoint document persisted between runs.

    Unknown keys are kept so that a document written by a newer version
    survives a round trip through an older one.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    last_checked_at: datetime = Field(alias="lastCheckedAt")
    feeds: dict[str, FeedState] = Field(default_factory=dict)

    @field_validator("last_checked_at")
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @classmethod
    def default(cls) -> RunState:
        return cls(last_checked_at=datetime.now(timezone.utc), feeds={})

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> RunState:
        return cls.model_validate(document)
