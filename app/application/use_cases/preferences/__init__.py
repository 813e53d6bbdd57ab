"""Use cases for managing delivery preferences."""

from .delete_preference import delete_preference
from .list_preferences import list_preferences
from .upsert_preference import upsert_preference

__all__ = ["delete_preference", "list_preferences", "upsert_preference"]
