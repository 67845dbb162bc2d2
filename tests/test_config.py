from pathlib import Path

from feedrelay.config import Settings


def test_feed_urls_from_comma_separated_setting() -> None:
    settings = Settings(feed_urls=" https://a.example.com/rss , ,https://b.example.com/rss")
    assert settings.resolve_feed_urls() == ["https://a.example.com/rss", "https://b.example.com/rss"]


def test_feed_urls_from_yaml_file(tmp_path: Path) -> None:
    feeds_file = tmp_path / "feeds.yaml"
    feeds_file.write_text(
        "feeds:\n  - name: A\n    url: https://a.example.com/rss\n  - url: https://b.example.com/atom\n",
        encoding="utf-8",
    )
    settings = Settings(feed_urls=None, feeds_file=str(feeds_file))
    assert settings.resolve_feed_urls() == ["https://a.example.com/rss", "https://b.example.com/atom"]


def test_missing_feeds_file_yields_no_feeds(tmp_path: Path) -> None:
    settings = Settings(feed_urls=None, feeds_file=str(tmp_path / "absent.yaml"))
    assert settings.resolve_feed_urls() == []


def test_webhook_is_required_outside_dry_run() -> None:
    settings = Settings(discord_webhook_url=None)
    assert settings.missing_required_runtime_fields(dry_run=False) == ["DISCORD_WEBHOOK_URL"]
    assert settings.missing_required_runtime_fields(dry_run=True) == []
