"""FastAPI dependency utilities."""

import secrets

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from app.application.use_cases.notifications import DeliveryOrchestrator
from app.config import Settings, get_settings
from app.infrastructure.database import get_db

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def require_api_key(
    api_key: str | None = Security(api_key_header),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject producers that do not send the configured ``X-API-Key``.

    The check is disabled when ``API_KEY`` is not configured.
    """

    expected = settings.api_key
    if not expected:
        return
    if not api_key or not secrets.compare_digest(api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Clave de API inválida",
            headers={"WWW-Authenticate": "APIKey"},
        )


def get_orchestrator(request: Request) -> DeliveryOrchestrator:
    """Return the orchestrator created by the application factory."""

    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="El servicio de notificaciones no está disponible",
        )
    return orchestrator


__all__ = ["get_db", "get_orchestrator", "require_api_key"]
