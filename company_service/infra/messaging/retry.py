"""Retry metadata carried in message headers, and the escalation policy.

The retry state travels with the message itself, so it survives broker restarts
and needs no local store. The policy is a pure function of that state, which
keeps the retry/dead-letter decision testable without a broker.

Design decisions:
- Frozen dataclass with slots; transitions return new instances
- Malformed or missing headers read as a fresh message (count 0)
- Failure reasons are truncated to prevent header bloat
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

# ─────────────────────────────────────────────────────
# Header key constants (x- prefix for custom headers)
# ─────────────────────────────────────────────────────
RETRY_COUNT_HEADER = "x-retry-count"
FAILED_REASON_HEADER = "x-failed-reason"
FAILED_AT_HEADER = "x-failed-at"

# Maximum failure reason length to prevent header bloat
MAX_REASON_LENGTH = 500


@dataclass(frozen=True, slots=True)
class RetryMetadata:
    """Retry state extracted from / stored to message headers.

    Attributes:
        retry_count: Number of times the message went through the retry path.
        failed_reason: Why the message was dead-lettered (dead-letter only).
        failed_at: When the message was dead-lettered (dead-letter only).

    Example:
        metadata = RetryMetadata.from_headers(message.headers)
        if policy.decide(metadata) is RetryDecision.RETRY:
            headers = {**message.headers, **metadata.next_attempt().to_headers()}
    """

    retry_count: int = 0
    failed_reason: str | None = None
    failed_at: datetime | None = None

    @classmethod
    def from_headers(cls, headers: dict[str, Any] | None) -> RetryMetadata:
        """Extract retry metadata from message headers.

        Args:
            headers: Message headers (may be None).

        Returns:
            RetryMetadata with values from headers or defaults.

        Example:
            assert RetryMetadata.from_headers({"x-retry-count": 2}).retry_count == 2
            assert RetryMetadata.from_headers(None).retry_count == 0
        """
        if not headers:
            return cls()

        reason = headers.get(FAILED_REASON_HEADER)
        return cls(
            retry_count=max(_safe_int(headers.get(RETRY_COUNT_HEADER)), 0),
            failed_reason=_as_text(reason)[:MAX_REASON_LENGTH] if reason is not None else None,
            failed_at=_safe_datetime(headers.get(FAILED_AT_HEADER)),
        )

    def to_headers(self) -> dict[str, Any]:
        """Convert to message headers.

        The retry count is always present; failure fields only once set.
        """
        headers: dict[str, Any] = {RETRY_COUNT_HEADER: self.retry_count}
        if self.failed_reason is not None:
            headers[FAILED_REASON_HEADER] = self.failed_reason[:MAX_REASON_LENGTH]
        if self.failed_at is not None:
            headers[FAILED_AT_HEADER] = self.failed_at.isoformat()
        return headers

    def next_attempt(self) -> RetryMetadata:
        """Metadata for a message being sent back through the retry path."""
        return RetryMetadata(retry_count=self.retry_count + 1)

    def dead_lettered(self, reason: str, at: datetime | None = None) -> RetryMetadata:
        """Metadata for a message being placed on the dead-letter queue.

        Args:
            reason: Failure description (truncated).
            at: Failure time; defaults to now (UTC).
        """
        return RetryMetadata(
            retry_count=self.retry_count,
            failed_reason=reason[:MAX_REASON_LENGTH],
            failed_at=at or datetime.now(UTC),
        )


class RetryDecision(StrEnum):
    """Outcome of the escalation policy for a failed delivery."""

    RETRY = "retry"
    DEAD_LETTER = "dead_letter"


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded retry: a fixed number of delayed redeliveries, then dead-letter.

    The delay itself is the retry queue's message TTL, so the policy only
    decides where a failed message goes next.

    Attributes:
        max_retries: Failures tolerated before dead-lettering.
        retry_delay_ms: Retry queue TTL.
    """

    max_retries: int = 3
    retry_delay_ms: int = 5000

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_delay_ms < 0:
            raise ValueError("retry_delay_ms must be >= 0")

    def decide(self, metadata: RetryMetadata) -> RetryDecision:
        """Return RETRY while the retry budget lasts, DEAD_LETTER afterwards."""
        if metadata.retry_count < self.max_retries:
            return RetryDecision.RETRY
        return RetryDecision.DEAD_LETTER


# ─────────────────────────────────────────────────────
# Helper functions
# ─────────────────────────────────────────────────────


def _safe_int(value: Any, default: int = 0) -> int:
    """Safely convert a header value to int with fallback."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def _as_text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _safe_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(_as_text(value))
    except ValueError:
        return None


__all__ = [
    "FAILED_AT_HEADER",
    "FAILED_REASON_HEADER",
    "RETRY_COUNT_HEADER",
    "RetryDecision",
    "RetryMetadata",
    "RetryPolicy",
]
