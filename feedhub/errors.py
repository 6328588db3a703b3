from __future__ import annotations


class FeedError(Exception):
    """Base class for every error raised by feedhub."""


class InvalidPage(FeedError, ValueError):
    def __init__(self, page: object) -> None:
        super().__init__(f"Page numbers start at 1, got {page!r}")
        self.page = page


class SourceUnavailable(FeedError):
    """One source adapter could not deliver its page."""

    def __init__(self, kind: str, reason: str = "") -> None:
        message = f"Source '{kind}' unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.kind = kind
        self.reason = reason


class AuthRejected(FeedError):
    """A provider or the persistence layer refused the session credential."""


class AlreadyFavorited(FeedError):
    def __init__(self, content_id: str) -> None:
        super().__init__(f"Content already in favorites: {content_id}")
        self.content_id = content_id


class NotFound(FeedError):
    def __init__(self, record_id: str) -> None:
        super().__init__(f"Favorite not found: {record_id}")
        self.record_id = record_id


class OrderPersistFailure(FeedError):
    """Saving the manual order failed; the in-memory order stays applied."""
