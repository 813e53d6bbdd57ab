"""Notification dispatch use cases."""

from .backoff import retry_delay
from .locks import NotificationLockRegistry
from .orchestrator import ALREADY_PROCESSED, INVALID_DESTINATION, DeliveryOrchestrator
from .preferences import DeliveryCounter, PreferenceEvaluator
from .templating import compose_content, find_placeholders, render_template, resolve_template

__all__ = [
    "ALREADY_PROCESSED",
    "DeliveryCounter",
    "DeliveryOrchestrator",
    "INVALID_DESTINATION",
    "NotificationLockRegistry",
    "PreferenceEvaluator",
    "compose_content",
    "find_placeholders",
    "render_template",
    "resolve_template",
    "retry_delay",
]
