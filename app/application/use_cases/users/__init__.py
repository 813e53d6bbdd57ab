"""Use cases for managing notification recipients."""

from .create_user import create_user
from .delete_user import delete_user
from .get_user import get_user
from .list_user_notifications import list_user_notifications
from .list_users import list_users
from .update_user import update_user

__all__ = [
    "create_user",
    "delete_user",
    "get_user",
    "list_user_notifications",
    "list_users",
    "update_user",
]
