"""Domain entity representing an entry of the retry/schedule queue."""

from dataclasses import dataclass
from datetime import datetime

SCHEDULE_REASON_SCHEDULED = "scheduled"
SCHEDULE_REASON_DEFERRED = "deferred"
SCHEDULE_REASON_RETRY = "retry"


@dataclass
class ScheduledDelivery:
    """A notification waiting for ``due_at`` before being dispatched again."""

    id: int | None
    notification_id: int
    due_at: datetime
    reason: str
    claimed_by: str | None = None
    claimed_at: datetime | None = None
    created_at: datetime | None = None


__all__ = [
    "ScheduledDelivery",
    "SCHEDULE_REASON_SCHEDULED",
    "SCHEDULE_REASON_DEFERRED",
    "SCHEDULE_REASON_RETRY",
]
