"""Placeholder rendering and template resolution."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy.orm import Session

from app.domain.entities import NotificationChannel, NotificationTemplate, RenderedContent
from app.domain.errors import MissingVariable, TemplateNotFound
from app.infrastructure.repositories import NotificationTemplateRepository

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_.\-]*)\s*\}\}")
SUBJECT_SEPARATOR = "\n\n"


def find_placeholders(text: str | None) -> list[str]:
    """Return the placeholder names referenced by ``text`` in order of appearance."""

    if not text:
        return []
    return [match.group(1) for match in PLACEHOLDER_PATTERN.finditer(text)]


def render_text(text: str, variables: Mapping[str, Any]) -> str:
    """Replace every placeholder in ``text``.

    Raises :class:`MissingVariable` naming the first placeholder without a value.
    """

    for name in find_placeholders(text):
        if name not in variables or variables[name] is None:
            raise MissingVariable(name)
    return PLACEHOLDER_PATTERN.sub(lambda match: str(variables[match.group(1)]), text)


def compose_content(
    channel: NotificationChannel, subject: str | None, body: str
) -> RenderedContent:
    """Build the channel-appropriate content for an already rendered message."""

    channel = NotificationChannel(channel)
    if channel.supports_subject and subject:
        return RenderedContent(
            subject=subject, body=body, content=f"{subject}{SUBJECT_SEPARATOR}{body}"
        )
    return RenderedContent(subject=None, body=body, content=body)


def render_template(
    template: NotificationTemplate, variables: Mapping[str, Any] | None
) -> RenderedContent:
    """Render ``template`` with ``variables``. Pure function of its inputs."""

    values = variables or {}
    # Subject is checked first so its missing variables are reported first.
    subject = render_text(template.subject, values) if template.subject else None
    body = render_text(template.body, values)
    return compose_content(template.channel, subject, body)


def resolve_template(
    session: Session,
    template_id: str,
    channel: NotificationChannel,
    *,
    languages: Iterable[str | None] = (),
) -> NotificationTemplate:
    """Return the active template for ``(template_id, channel)``.

    ``languages`` are tried in order (for example the user's locale and then
    the default language) before falling back to any active language. The
    highest version wins inside each language.
    """

    repository = NotificationTemplateRepository(session)
    tried: set[str] = set()
    for language in languages:
        if not language:
            continue
        for candidate in _language_candidates(language):
            if candidate in tried:
                continue
            tried.add(candidate)
            template = repository.find_active(template_id, channel, language=candidate)
            if template is not None:
                return template

    template = repository.find_active(template_id, channel)
    if template is None:
        raise TemplateNotFound(
            f"No existe una plantilla activa '{template_id}' para el canal {NotificationChannel(channel).value}"
        )
    return template


def _language_candidates(language: str) -> list[str]:
    normalized = language.strip().replace("_", "-").lower()
    candidates = [normalized]
    base = normalized.split("-", 1)[0]
    if base and base != normalized:
        candidates.append(base)
    return candidates


__all__ = [
    "PLACEHOLDER_PATTERN",
    "SUBJECT_SEPARATOR",
    "compose_content",
    "find_placeholders",
    "render_template",
    "render_text",
    "resolve_template",
]
