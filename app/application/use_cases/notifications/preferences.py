"""User preference filtering: opt-outs, quiet hours and rate caps."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Protocol

from app.domain.entities import (
    Notification,
    NotificationChannel,
    NotificationPreference,
    NotificationPriority,
    PreferenceDecision,
)
from app.utils import in_timezone

logger = logging.getLogger(__name__)

HOUR_WINDOW = timedelta(hours=1)
DAY_WINDOW = timedelta(days=1)

REASON_NO_PREFERENCE = "no_preference"
REASON_OPTED_OUT = "opted_out"
REASON_QUIET_HOURS = "quiet_hours"
REASON_HOURLY_LIMIT = "hourly_limit"
REASON_DAILY_LIMIT = "daily_limit"


class DeliveryCounter(Protocol):
    """Source of successful delivery timestamps for rate limiting."""

    def successful_deliveries_since(
        self, user_id: int, channel: NotificationChannel, since: datetime
    ) -> list[datetime]:
        ...


class PreferenceEvaluator:
    """Decide whether a notification may be sent now.

    Evaluation only reads state. Quota is consumed when the orchestrator
    records a successful attempt in the audit log, so callers must keep other
    deliveries to the same user and channel out between ``evaluate`` and that
    record.
    """

    def __init__(
        self,
        counter: DeliveryCounter | None = None,
        *,
        opt_in_required: bool = True,
    ) -> None:
        self._counter = counter
        self._opt_in_required = opt_in_required

    def evaluate(
        self,
        notification: Notification,
        preference: NotificationPreference | None,
        *,
        now: datetime,
        timezone: str | None = None,
    ) -> PreferenceDecision:
        mandatory = notification.type.mandatory

        if preference is None:
            if mandatory or not self._opt_in_required:
                return PreferenceDecision.allow()
            return PreferenceDecision.deny(REASON_NO_PREFERENCE)

        if not preference.enabled and not mandatory:
            return PreferenceDecision.deny(REASON_OPTED_OUT)

        if notification.priority is not NotificationPriority.CRITICAL:
            local_now = in_timezone(now, timezone)
            if preference.in_quiet_hours(local_now.time()):
                return PreferenceDecision.defer(
                    quiet_hours_end(preference, local_now), REASON_QUIET_HOURS
                )

        return self._check_rate_limits(notification, preference, now=now)

    def _check_rate_limits(
        self,
        notification: Notification,
        preference: NotificationPreference,
        *,
        now: datetime,
    ) -> PreferenceDecision:
        if self._counter is None or notification.user_id is None:
            return PreferenceDecision.allow()
        if not preference.max_per_hour and not preference.max_per_day:
            return PreferenceDecision.allow()

        deliveries = sorted(
            self._counter.successful_deliveries_since(
                notification.user_id, notification.channel, now - DAY_WINDOW
            )
        )

        blocked: list[tuple[str, datetime]] = []
        if preference.max_per_hour:
            hourly = [moment for moment in deliveries if moment > now - HOUR_WINDOW]
            if len(hourly) >= preference.max_per_hour:
                release = hourly[len(hourly) - preference.max_per_hour] + HOUR_WINDOW
                blocked.append((REASON_HOURLY_LIMIT, release))
        if preference.max_per_day and len(deliveries) >= preference.max_per_day:
            release = deliveries[len(deliveries) - preference.max_per_day] + DAY_WINDOW
            blocked.append((REASON_DAILY_LIMIT, release))

        if not blocked:
            return PreferenceDecision.allow()

        reason, until = max(blocked, key=lambda item: item[1])
        logger.debug(
            "Rate limit %s reached for user %s on %s",
            reason,
            notification.user_id,
            notification.channel.value,
        )
        if notification.type.mandatory:
            return PreferenceDecision.defer(until, reason)
        return PreferenceDecision.deny(reason)


def quiet_hours_end(preference: NotificationPreference, local_now: datetime) -> datetime:
    """Return the next time the quiet hours window closes after ``local_now``."""

    end = datetime.combine(local_now.date(), preference.quiet_hours_end, tzinfo=local_now.tzinfo)
    if end <= local_now:
        end = datetime.combine(
            local_now.date() + timedelta(days=1),
            preference.quiet_hours_end,
            tzinfo=local_now.tzinfo,
        )
    return end


__all__ = [
    "DeliveryCounter",
    "PreferenceEvaluator",
    "REASON_DAILY_LIMIT",
    "REASON_HOURLY_LIMIT",
    "REASON_NO_PREFERENCE",
    "REASON_OPTED_OUT",
    "REASON_QUIET_HOURS",
    "quiet_hours_end",
]
