"""Endpoints used by event producers to dispatch and track notifications."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from app.application.use_cases.notifications import DeliveryOrchestrator
from app.application.use_cases.users import get_user
from app.domain.entities import DeliveryAttemptLog, DispatchResult, Notification
from app.domain.errors import NotificationError
from app.infrastructure.database import SessionLocal
from app.infrastructure.notifications import notification_manager
from app.interfaces.api.dependencies import get_orchestrator, require_api_key
from app.interfaces.api.routes_helpers import to_http_exception
from app.interfaces.api.schemas import (
    DeliveryAttemptRead,
    DeliveryReceiptRequest,
    DispatchResultRead,
    NotificationActionRead,
    NotificationBatchRequest,
    NotificationCreatedRead,
    NotificationDispatchRequest,
    NotificationRead,
    NotificationScheduleRequest,
    NotificationStatsRead,
    NotificationStatusRead,
    NotificationTemplateRequest,
)

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
    dependencies=[Depends(require_api_key)],
)
ws_router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)


def _request_to_entity(payload: NotificationDispatchRequest, max_retries: int) -> Notification:
    return Notification(
        id=None,
        user_id=payload.user_id,
        title=payload.title,
        message=payload.message,
        channel=payload.channel,
        type=payload.type,
        priority=payload.priority,
        scheduled_at=payload.scheduled_at,
        max_retries=payload.max_retries if payload.max_retries is not None else max_retries,
    )


def _result_to_read_model(result: DispatchResult) -> DispatchResultRead:
    return DispatchResultRead.model_validate(result)


def _notification_to_read_model(notification: Notification) -> NotificationRead:
    return NotificationRead.model_validate(notification)


def _attempt_to_read_model(entry: DeliveryAttemptLog) -> DeliveryAttemptRead:
    return DeliveryAttemptRead.model_validate(entry)


@router.post("/dispatch", response_model=DispatchResultRead)
def dispatch_notification(
    payload: NotificationDispatchRequest,
    orchestrator: DeliveryOrchestrator = Depends(get_orchestrator),
):
    """Registra y despacha una notificación para un usuario."""

    notification = _request_to_entity(payload, orchestrator.settings.default_max_retries)
    try:
        result = orchestrator.dispatch(notification)
    except (NotificationError, ValueError, LookupError) as exc:
        raise to_http_exception(exc) from exc
    return _result_to_read_model(result)


@router.post("/batch", response_model=list[DispatchResultRead])
def dispatch_batch(
    payload: NotificationBatchRequest,
    orchestrator: DeliveryOrchestrator = Depends(get_orchestrator),
):
    """Envía el mismo mensaje a varios usuarios; cada elemento informa su propio resultado."""

    results = orchestrator.dispatch_batch(
        payload.user_ids,
        payload.title,
        payload.message,
        payload.channel,
        notification_type=payload.type,
        priority=payload.priority,
    )
    return [_result_to_read_model(result) for result in results]


@router.post(
    "/schedule",
    response_model=NotificationCreatedRead,
    status_code=status.HTTP_202_ACCEPTED,
)
def schedule_notification(
    payload: NotificationScheduleRequest,
    orchestrator: DeliveryOrchestrator = Depends(get_orchestrator),
):
    """Programa una notificación para una fecha futura."""

    notification = _request_to_entity(payload, orchestrator.settings.default_max_retries)
    try:
        notification_id = orchestrator.schedule(notification, payload.scheduled_at)
    except (NotificationError, ValueError, LookupError) as exc:
        raise to_http_exception(exc) from exc
    return NotificationCreatedRead(notification_id=notification_id)


@router.post(
    "/from-template",
    response_model=NotificationCreatedRead,
    status_code=status.HTTP_201_CREATED,
)
def create_from_template(
    payload: NotificationTemplateRequest,
    orchestrator: DeliveryOrchestrator = Depends(get_orchestrator),
):
    """Genera una notificación pendiente a partir de una plantilla."""

    try:
        notification_id = orchestrator.create_from_template(
            payload.user_id,
            payload.template_id,
            payload.variables,
            payload.channel,
            notification_type=payload.type,
            priority=payload.priority,
        )
    except (NotificationError, ValueError, LookupError) as exc:
        raise to_http_exception(exc) from exc
    return NotificationCreatedRead(notification_id=notification_id)


@router.get("/stats", response_model=NotificationStatsRead)
def read_stats(
    start: datetime | None = Query(default=None, description="Inicio del rango (inclusive)"),
    end: datetime | None = Query(default=None, description="Fin del rango (exclusivo)"),
    orchestrator: DeliveryOrchestrator = Depends(get_orchestrator),
):
    """Devuelve los contadores de notificaciones creadas en el rango indicado."""

    return NotificationStatsRead.model_validate(orchestrator.stats(start, end))


@router.get("/{notification_id}", response_model=NotificationRead)
def read_notification(
    notification_id: int,
    orchestrator: DeliveryOrchestrator = Depends(get_orchestrator),
):
    try:
        notification = orchestrator.get(notification_id)
    except NotificationError as exc:
        raise to_http_exception(exc) from exc
    return _notification_to_read_model(notification)


@router.get("/{notification_id}/status", response_model=NotificationStatusRead)
def read_notification_status(
    notification_id: int,
    orchestrator: DeliveryOrchestrator = Depends(get_orchestrator),
):
    try:
        current = orchestrator.get_status(notification_id)
    except NotificationError as exc:
        raise to_http_exception(exc) from exc
    return NotificationStatusRead(notification_id=notification_id, status=current)


@router.post("/{notification_id}/cancel", response_model=NotificationActionRead)
def cancel_notification(
    notification_id: int,
    orchestrator: DeliveryOrchestrator = Depends(get_orchestrator),
):
    """Cancela una notificación pendiente o en espera de reintento."""

    try:
        cancelled = orchestrator.cancel(notification_id)
        current = orchestrator.get_status(notification_id)
    except NotificationError as exc:
        raise to_http_exception(exc) from exc
    return NotificationActionRead(
        notification_id=notification_id, success=cancelled, status=current
    )


@router.post("/{notification_id}/retry", response_model=NotificationActionRead)
def retry_notification(
    notification_id: int,
    orchestrator: DeliveryOrchestrator = Depends(get_orchestrator),
):
    """Reencola una notificación fallida que aún tiene reintentos disponibles."""

    try:
        retried = orchestrator.retry(notification_id)
        current = orchestrator.get_status(notification_id)
    except NotificationError as exc:
        raise to_http_exception(exc) from exc
    return NotificationActionRead(
        notification_id=notification_id, success=retried, status=current
    )


@router.post("/{notification_id}/delivered", response_model=NotificationRead)
def confirm_delivery(
    notification_id: int,
    payload: DeliveryReceiptRequest,
    orchestrator: DeliveryOrchestrator = Depends(get_orchestrator),
):
    """Registra el acuse de entrega enviado por el proveedor."""

    try:
        notification = orchestrator.record_delivery(notification_id, payload.external_id)
    except NotificationError as exc:
        raise to_http_exception(exc) from exc
    return _notification_to_read_model(notification)


@router.get("/{notification_id}/attempts", response_model=list[DeliveryAttemptRead])
def list_attempts(
    notification_id: int,
    orchestrator: DeliveryOrchestrator = Depends(get_orchestrator),
):
    """Devuelve el historial de intentos de entrega de la notificación."""

    try:
        attempts = orchestrator.list_attempts(notification_id)
    except NotificationError as exc:
        raise to_http_exception(exc) from exc
    return [_attempt_to_read_model(entry) for entry in attempts]


@ws_router.websocket("/ws/{user_id}")
async def notifications_websocket(websocket: WebSocket, user_id: int) -> None:
    """Websocket que entrega en tiempo real las notificaciones in-app del usuario."""

    session_factory = getattr(websocket.app.state, "session_factory", SessionLocal)
    session = session_factory()
    try:
        user = get_user(session, user_id)
    except LookupError:
        await websocket.close(code=1008)
        return
    finally:
        session.close()

    if not user.can_receive_notifications():
        await websocket.close(code=1008)
        return

    await notification_manager.connect(user.id, websocket)
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except ValueError:
                continue

            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        notification_manager.disconnect(user.id, websocket)
    except Exception:  # pragma: no cover - unexpected socket errors
        notification_manager.disconnect(user.id, websocket)
        raise
