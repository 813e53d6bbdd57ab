"""Channel senders and the registry that resolves them."""

from .base import ChannelSender, is_retryable_status
from .email import SendGridEmailSender
from .in_app import InAppSender
from .push import HttpPushSender
from .registry import SenderRegistry, build_default_registry
from .sms import TwilioSmsSender

__all__ = [
    "ChannelSender",
    "HttpPushSender",
    "InAppSender",
    "SendGridEmailSender",
    "SenderRegistry",
    "TwilioSmsSender",
    "build_default_registry",
    "is_retryable_status",
]
