"""Error taxonomy raised by the notification dispatch core."""

from __future__ import annotations


class NotificationError(Exception):
    """Base class for every error raised by the dispatch core."""

    code = "notification_error"


class ValidationError(NotificationError, ValueError):
    """Raised when a notification or request fails input validation."""

    code = "validation_error"


class MissingVariable(ValidationError):
    """Raised when a template placeholder has no value at render time."""

    code = "missing_variable"

    def __init__(self, name: str) -> None:
        super().__init__(f"Falta el valor para la variable '{name}'")
        self.name = name


class UnsupportedChannel(NotificationError):
    """Raised when no sender is registered for a channel (configuration defect)."""

    code = "unsupported_channel"

    def __init__(self, channel: object) -> None:
        super().__init__(f"No hay un emisor registrado para el canal '{channel}'")
        self.channel = channel


class TemplateNotFound(NotificationError, LookupError):
    """Raised when a template is missing or inactive."""

    code = "template_not_found"


class NotificationNotFound(NotificationError, LookupError):
    """Raised when a notification id does not exist."""

    code = "notification_not_found"


class PreferenceDenied(NotificationError):
    """Raised when user preferences reject a notification."""

    code = "preference_denied"


class TransientProviderFailure(NotificationError):
    """Provider failure that may succeed if attempted again (timeouts, 5xx)."""

    code = "transient_provider_failure"
    retryable = True


class PermanentProviderFailure(NotificationError):
    """Provider failure that will not succeed on retry (invalid recipient, 4xx)."""

    code = "permanent_provider_failure"
    retryable = False


class RetryExhausted(NotificationError):
    """Raised when a notification used its whole retry budget."""

    code = "retry_exhausted"


class DispatchInProgress(NotificationError):
    """Raised when another dispatch currently owns the notification."""

    code = "dispatch_in_progress"


__all__ = [
    "DispatchInProgress",
    "MissingVariable",
    "NotificationError",
    "NotificationNotFound",
    "PermanentProviderFailure",
    "PreferenceDenied",
    "RetryExhausted",
    "TemplateNotFound",
    "TransientProviderFailure",
    "UnsupportedChannel",
    "ValidationError",
]
