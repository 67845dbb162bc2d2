from __future__ import annotations


class FeedRelayError(Exception):
    """Base class for every error raised by feedrelay."""


class TransportError(FeedRelayError):
    """An HTTP request failed after all attempts were used."""

    def __init__(self, message: str, attempts: int = 1, last_error: str | None = None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class FeedFetchError(FeedRelayError):
    """A feed could not be fetched or parsed. Recoverable: the feed is skipped."""

    def __init__(self, message: str, feed_id: str | None = None) -> None:
        super().__init__(message)
        self.feed_id = feed_id


class DeliveryError(FeedRelayError):
    """A batch of items could not be delivered. Recoverable: the checkpoint stays put."""


class NotificationError(FeedRelayError):
    """An error report could not be sent. Logged, never propagated."""


class CheckpointLoadError(FeedRelayError):
    """The checkpoint document could not be read. Fatal for the run."""


class CheckpointSaveError(FeedRelayError):
    """The checkpoint document could not be written. Fatal for the run."""
