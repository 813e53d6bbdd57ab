"""Rutas para publicar y consultar plantillas de notificación."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.application.use_cases.templates import (
    create_template as create_template_uc,
    get_template as get_template_uc,
    list_templates as list_templates_uc,
    update_template_status as update_template_status_uc,
)
from app.domain.entities import NotificationChannel, NotificationTemplate
from app.domain.errors import NotificationError
from app.interfaces.api.dependencies import get_db, require_api_key
from app.interfaces.api.routes_helpers import to_http_exception
from app.interfaces.api.schemas import TemplateCreate, TemplateRead, TemplateStatusUpdate

router = APIRouter(prefix="/templates", tags=["templates"], dependencies=[Depends(require_api_key)])


def _to_read_model(template: NotificationTemplate) -> TemplateRead:
    return TemplateRead.model_validate(template)


@router.post("/", response_model=TemplateRead, status_code=status.HTTP_201_CREATED)
def create_template(payload: TemplateCreate, db: Session = Depends(get_db)):
    """Publica una nueva versión de la plantilla."""

    try:
        template = create_template_uc(db, **payload.model_dump())
    except (NotificationError, ValueError) as exc:
        raise to_http_exception(exc) from exc
    return _to_read_model(template)


@router.get("/", response_model=list[TemplateRead])
def list_templates(
    template_id: str | None = None,
    channel: NotificationChannel | None = None,
    active_only: bool = False,
    db: Session = Depends(get_db),
):
    """Lista las versiones de plantillas registradas."""

    templates = list_templates_uc(
        db, template_id=template_id, channel=channel, active_only=active_only
    )
    return [_to_read_model(template) for template in templates]


@router.get("/{entry_id}", response_model=TemplateRead)
def read_template(entry_id: int, db: Session = Depends(get_db)):
    try:
        template = get_template_uc(db, entry_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _to_read_model(template)


@router.patch("/{entry_id}/status", response_model=TemplateRead)
def update_template_status(
    entry_id: int, payload: TemplateStatusUpdate, db: Session = Depends(get_db)
):
    """Activa o desactiva una versión de la plantilla."""

    try:
        template = update_template_status_uc(db, entry_id, is_active=payload.is_active)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _to_read_model(template)
