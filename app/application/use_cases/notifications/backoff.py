"""Bounded exponential backoff for retried deliveries."""

from __future__ import annotations

from datetime import timedelta

from app.config import Settings
from app.domain.entities import NotificationPriority


def retry_delay(priority: NotificationPriority, retry_number: int, settings: Settings) -> timedelta:
    """Return the wait before retry number ``retry_number`` (1-based).

    The first delay is a fraction of the priority's maximum acceptable delay,
    doubled on every further retry and never longer than that maximum or
    ``retry_max_delay_seconds``.
    """

    max_delay = NotificationPriority(priority).max_delay.total_seconds()
    base = max(settings.retry_min_delay_seconds, max_delay / settings.retry_backoff_divisor)
    ceiling = min(settings.retry_max_delay_seconds, max_delay)
    exponent = max(retry_number, 1) - 1
    delay = base * (2 ** exponent)
    return timedelta(seconds=min(delay, ceiling))


__all__ = ["retry_delay"]
