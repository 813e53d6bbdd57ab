"""Rutas para administrar los destinatarios de notificaciones."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from app.application.use_cases.users import (
    create_user as create_user_uc,
    delete_user as delete_user_uc,
    get_user as get_user_uc,
    list_user_notifications as list_user_notifications_uc,
    list_users as list_users_uc,
    update_user as update_user_uc,
)
from app.domain.entities import Notification, User
from app.domain.errors import NotificationError
from app.interfaces.api.dependencies import get_db, require_api_key
from app.interfaces.api.routes_helpers import to_http_exception
from app.interfaces.api.schemas import NotificationRead, UserCreate, UserRead, UserUpdate

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(require_api_key)])
logger = logging.getLogger(__name__)


def _to_read_model(user: User) -> UserRead:
    return UserRead.model_validate(user)


def _notification_to_read_model(notification: Notification) -> NotificationRead:
    return NotificationRead.model_validate(notification)


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register_user(user_in: UserCreate, db: Session = Depends(get_db)):
    """Registra un nuevo destinatario con sus datos de contacto."""

    try:
        user = create_user_uc(db, **user_in.model_dump())
    except (NotificationError, ValueError) as exc:
        raise to_http_exception(exc) from exc
    logger.info("Usuario %s registrado", user.id)
    return _to_read_model(user)


@router.get("/", response_model=list[UserRead])
def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    include_deleted: bool = False,
    db: Session = Depends(get_db),
):
    """Devuelve una lista de usuarios registrados."""

    users = list_users_uc(db, skip=skip, limit=limit, include_deleted=include_deleted)
    return [_to_read_model(user) for user in users]


@router.get("/{user_id}", response_model=UserRead)
def read_user(user_id: int, db: Session = Depends(get_db)):
    """Obtiene al usuario identificado por ``user_id``."""

    try:
        user = get_user_uc(db, user_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _to_read_model(user)


@router.put("/{user_id}", response_model=UserRead)
def update_user(user_id: int, user_in: UserUpdate, db: Session = Depends(get_db)):
    """Actualiza los datos de contacto de un usuario existente."""

    update_data = user_in.model_dump(exclude_unset=True)
    try:
        user = update_user_uc(db, user_id=user_id, **update_data)
    except (NotificationError, ValueError, LookupError) as exc:
        raise to_http_exception(exc) from exc
    return _to_read_model(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, db: Session = Depends(get_db)):
    """Da de baja al usuario; su historial de notificaciones se conserva."""

    try:
        delete_user_uc(db, user_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{user_id}/notifications", response_model=list[NotificationRead])
def list_user_notifications(
    user_id: int,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Bandeja de notificaciones del usuario, de la más reciente a la más antigua."""

    try:
        notifications = list_user_notifications_uc(db, user_id, limit=limit)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return [_notification_to_read_model(notification) for notification in notifications]
