"""Aggregate application use cases."""

from .notifications import DeliveryOrchestrator
from .users import create_user, get_user

__all__ = [
    "DeliveryOrchestrator",
    "create_user",
    "get_user",
]
