"""Use cases for managing notification templates."""

from .create_template import create_template
from .get_template import get_template
from .list_templates import list_templates
from .update_template_status import update_template_status

__all__ = ["create_template", "get_template", "list_templates", "update_template_status"]
