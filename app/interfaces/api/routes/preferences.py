"""Rutas para administrar las preferencias de entrega de un usuario."""

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.application.use_cases.preferences import (
    delete_preference as delete_preference_uc,
    list_preferences as list_preferences_uc,
    upsert_preference as upsert_preference_uc,
)
from app.domain.entities import NotificationChannel, NotificationPreference, NotificationType
from app.domain.errors import NotificationError
from app.interfaces.api.dependencies import get_db, require_api_key
from app.interfaces.api.routes_helpers import to_http_exception
from app.interfaces.api.schemas import PreferenceRead, PreferenceUpsert

router = APIRouter(
    prefix="/users/{user_id}/preferences",
    tags=["preferences"],
    dependencies=[Depends(require_api_key)],
)


def _to_read_model(preference: NotificationPreference) -> PreferenceRead:
    return PreferenceRead.model_validate(preference)


@router.get("/", response_model=list[PreferenceRead])
def list_preferences(user_id: int, db: Session = Depends(get_db)):
    """Devuelve las preferencias configuradas por el usuario."""

    try:
        preferences = list_preferences_uc(db, user_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return [_to_read_model(preference) for preference in preferences]


@router.put("/", response_model=PreferenceRead)
def upsert_preference(user_id: int, payload: PreferenceUpsert, db: Session = Depends(get_db)):
    """Crea o reemplaza la preferencia para un tipo y canal."""

    try:
        preference = upsert_preference_uc(
            db,
            user_id=user_id,
            notification_type=payload.type,
            channel=payload.channel,
            enabled=payload.enabled,
            quiet_hours_start=payload.quiet_hours_start,
            quiet_hours_end=payload.quiet_hours_end,
            max_per_hour=payload.max_per_hour,
            max_per_day=payload.max_per_day,
        )
    except (NotificationError, ValueError, LookupError) as exc:
        raise to_http_exception(exc) from exc
    return _to_read_model(preference)


@router.delete("/{notification_type}/{channel}", status_code=status.HTTP_204_NO_CONTENT)
def delete_preference(
    user_id: int,
    notification_type: NotificationType,
    channel: NotificationChannel,
    db: Session = Depends(get_db),
):
    """Elimina la preferencia; se vuelve a aplicar la política por defecto."""

    try:
        delete_preference_uc(db, user_id=user_id, notification_type=notification_type, channel=channel)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
