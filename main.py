from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.application.use_cases.notifications import DeliveryOrchestrator
from app.application.worker import ScheduleWorker
from app.config import Settings, get_settings
from app.infrastructure.channels import SenderRegistry, build_default_registry
from app.infrastructure.database import SessionLocal, engine, initialize_database
from app.interfaces.api.routes import register_routes


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Inicializa la base de datos y el worker de la cola al arrancar; los libera al cerrar."""

    initialize_database(app.state.engine)
    worker: ScheduleWorker | None = None
    if app.state.settings.worker_enabled:
        worker = ScheduleWorker(app.state.orchestrator)
        worker.start()
    app.state.worker = worker
    try:
        yield
    finally:
        if worker is not None:
            worker.stop()
        if app.state.engine is engine:
            engine.dispose()


def create_app(
    *,
    settings: Settings | None = None,
    registry: SenderRegistry | None = None,
    orchestrator: DeliveryOrchestrator | None = None,
    session_factory=None,
    bind=None,
) -> FastAPI:
    """Crea y configura la aplicación principal de FastAPI."""

    settings = settings or get_settings()
    session_factory = session_factory or SessionLocal
    app = FastAPI(title="Notification Dispatch API", lifespan=lifespan)

    if orchestrator is None:
        orchestrator = DeliveryOrchestrator(
            session_factory,
            registry or build_default_registry(settings),
            settings=settings,
        )
    app.state.settings = settings
    app.state.engine = bind or engine
    app.state.session_factory = session_factory
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
