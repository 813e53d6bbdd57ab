"""Value objects exchanged by the dispatch pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .notification import NotificationStatus


class PreferenceOutcome(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"
    DEFER = "DEFER"


@dataclass(frozen=True)
class PreferenceDecision:
    """Verdict of the preference evaluator for one notification."""

    outcome: PreferenceOutcome
    reason: str | None = None
    until: datetime | None = None

    @classmethod
    def allow(cls) -> "PreferenceDecision":
        return cls(PreferenceOutcome.ALLOW)

    @classmethod
    def deny(cls, reason: str) -> "PreferenceDecision":
        return cls(PreferenceOutcome.DENY, reason=reason)

    @classmethod
    def defer(cls, until: datetime, reason: str) -> "PreferenceDecision":
        return cls(PreferenceOutcome.DEFER, reason=reason, until=until)

    @property
    def allowed(self) -> bool:
        return self.outcome is PreferenceOutcome.ALLOW


@dataclass(frozen=True)
class SendResult:
    """Outcome reported by a channel sender for a single provider call."""

    success: bool
    retryable: bool = False
    error: str | None = None
    external_id: str | None = None

    @classmethod
    def delivered(cls, external_id: str | None = None) -> "SendResult":
        return cls(success=True, external_id=external_id)

    @classmethod
    def failed(cls, error: str, *, retryable: bool) -> "SendResult":
        return cls(success=False, retryable=retryable, error=error)


@dataclass(frozen=True)
class DispatchResult:
    """Immediate answer returned to the caller of a dispatch operation.

    ``status`` is ``None`` when the request was rejected before a notification
    record existed. ``scheduled_for`` is set when delivery was postponed to the
    retry/schedule queue.
    """

    notification_id: int | None
    status: NotificationStatus | None
    scheduled_for: datetime | None = None
    error: str | None = None
    error_code: str | None = None
    retryable: bool = False

    @property
    def scheduled(self) -> bool:
        return self.scheduled_for is not None

    @property
    def accepted(self) -> bool:
        return self.status is not None and self.status not in (
            NotificationStatus.CANCELLED,
            NotificationStatus.FAILED,
        ) and self.error_code is None


@dataclass(frozen=True)
class NotificationStats:
    """Counters for notifications created inside a time range."""

    total: int
    sent: int
    delivered: int
    failed: int
    pending: int
    cancelled: int


__all__ = [
    "DispatchResult",
    "NotificationStats",
    "PreferenceDecision",
    "PreferenceOutcome",
    "SendResult",
]
