from __future__ import annotations

import os
from functools import lru_cache

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

from feedrelay.schemas.feed import FeedsFile


class Settings(BaseSettings):
    discord_webhook_url: str | None = None
    error_webhook_url: str | None = None
    discord_username: str | None = None
    discord_avatar_url: str | None = None

    feed_urls: str | None = None
    feeds_file: str = "data/feeds.yaml"
    state_file: str = "data/state.json"

    request_timeout_seconds: float = 3.0
    request_retries: int = 1
    retry_delay_seconds: float = 1.0
    webhook_timeout_seconds: float = 10.0
    max_items_per_feed: int = 10
    user_agent: str = "FeedRelay/0.1"
    suppress_feed_error_notifications: bool = False

    langsmith_api_key: str | None = None
    langsmith_project: str = "feedrelay"
    langsmith_tracing: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def missing_required_runtime_fields(self, dry_run: bool) -> list[str]:
        missing: list[str] = []

        if not dry_run and not (self.discord_webhook_url or "").strip():
            missing.append("DISCORD_WEBHOOK_URL")

        return missing

    def resolve_feed_urls(self) -> list[str]:
        """Feed URLs from FEED_URLS when set, otherwise from the feeds YAML file."""
        if self.feed_urls and self.feed_urls.strip():
            return [url.strip() for url in self.feed_urls.split(",") if url.strip()]

        if not os.path.exists(self.feeds_file):
            return []
        with open(self.feeds_file, "r", encoding="utf-8") as feeds_file:
            data = yaml.safe_load(feeds_file) or {}
        parsed = FeedsFile.model_validate(data)
        return [feed.url.strip() for feed in parsed.feeds if feed.url.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def configure_langsmith_env(settings: Settings) -> None:
    if settings.langsmith_api_key:
        os.environ["LANGSMITH_API_KEY"] = settings.langsmith_api_key
    os.environ["LANGSMITH_PROJECT"] = settings.langsmith_project
    os.environ["LANGSMITH_TRACING"] = "true" if settings.langsmith_tracing else "false"
