from fastapi import FastAPI

from .notifications import router as notifications_router
from .notifications import ws_router as notifications_ws_router
from .preferences import router as preferences_router
from .templates import router as templates_router
from .users import router as users_router


def register_routes(app: FastAPI) -> None:
    """Registra todos los routers de la API en la aplicación FastAPI."""

    app.include_router(notifications_router)
    app.include_router(notifications_ws_router)
    app.include_router(users_router)
    app.include_router(preferences_router)
    app.include_router(templates_router)
