"""Custom exceptions for configuration, voting and storage errors."""

from __future__ import annotations


class ConfigurationError(Exception):
    """Base exception for configuration errors with optional suggestions."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"[Configuration Error] {self.message}"
        if self.suggestion:
            msg += f"\n[Suggestion] {self.suggestion}"
        return msg


class MissingCredentialsError(ConfigurationError):
    """Error when upload credentials are missing."""

    def __init__(self, field: str, env_var: str) -> None:
        super().__init__(
            f"Missing ImageKit setting '{field}'",
            f"Set {env_var} or add uploads.{field} to config.yaml.",
        )


class RankerError(Exception):
    """Base class for errors surfaced to callers of the ranking service.

    Attributes:
        kind: Stable machine-readable error kind.
        retryable: Whether the caller may safely retry the same request.
    """

    kind = "ranker_error"
    retryable = False

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidVoteError(RankerError):
    """Vote input is malformed or self-referential."""

    kind = "invalid_vote"


class InvalidRatingError(RankerError):
    """A rating is not a finite number."""

    kind = "invalid_rating"


class ItemNotFoundError(RankerError):
    """An item id does not resolve to a stored item."""

    kind = "item_not_found"

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Item not found: {item_id}")


class InsufficientItemsError(RankerError):
    """Fewer than two items exist, so no matchup can be formed."""

    kind = "insufficient_items"

    def __init__(self, available: int) -> None:
        self.available = available
        super().__init__(f"Not enough items for a matchup (have {available}, need 2)")


class PersistenceError(RankerError):
    """Storage failure during fetch or commit. Nothing was written."""

    kind = "persistence_error"
    retryable = True


class StaleWriteError(PersistenceError):
    """A compare-and-swap write found the row changed since it was read."""

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Item {item_id} was modified by a concurrent vote")


class InvalidItemError(RankerError):
    """New item submission is missing a name or image."""

    kind = "invalid_item"


class UploadError(RankerError):
    """Image upload to the storage backend failed."""

    kind = "upload_error"
    retryable = True
