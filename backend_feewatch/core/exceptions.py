"""
Application-level exceptions.

Only ValidationError and UpstreamUnavailable ever reach a caller of the
pipelines; ItemUnavailable (including DeadlineExceeded) and ParseFailure are
recovered where they occur.
"""

from __future__ import annotations


class FeewatchError(Exception):
    """Base class for all Feewatch errors."""


class ValidationError(FeewatchError):
    """Missing or invalid required input; raised before any network call."""


class UpstreamUnavailable(FeewatchError):
    """A stage-wide remote call (listing, registry lookup) failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TokenNotFound(UpstreamUnavailable):
    """The creator registry has no record of the requested token."""


class ItemUnavailable(FeewatchError):
    """
    One item could not be resolved.

    transient=True marks failures worth retrying (rate limit, 5xx, transport).
    """

    def __init__(self, item_id: str, reason: str, *, transient: bool = False) -> None:
        super().__init__(f"{item_id}: {reason}")
        self.item_id = item_id
        self.reason = reason
        self.transient = transient


class DeadlineExceeded(ItemUnavailable):
    """The run's wall-clock budget ran out while this item was being resolved."""

    def __init__(self, item_id: str) -> None:
        super().__init__(item_id, "deadline reached", transient=True)


class ParseFailure(FeewatchError):
    """An external response could not be decoded into the expected structure."""


def require_address(value: str | None, name: str = "address") -> str:
    """Strip and validate an address parameter; raise ValidationError if empty."""
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{name} parameter is required")
    return value
