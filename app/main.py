from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from pathlib import Path
from typing import Optional
import logging
import uvicorn

from . import routers
from .config import Settings, get_settings
from .services.response_backend import ResponseBackend, create_backend
from .services.session_registry import SessionRegistry
from .services.sync_adapter import SyncAdapter
from .utils.constants import FormLabels

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"


def create_app(
    settings: Optional[Settings] = None,
    backend: Optional[ResponseBackend] = None,
) -> FastAPI:
    """Create the potluck application.

    Args:
        settings: Runtime settings; read from the environment when omitted.
        backend: Backend for the responses table; chosen from settings at
            startup when omitted.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Potluck RSVP",
        description="Live potluck sign-up sheet",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.backend = backend
    app.state.registry = None

    templates = Jinja2Templates(directory=str(TEMPLATE_DIR))

    @app.on_event("startup")
    async def startup_event():
        """Connect to the responses table and start accepting views"""
        if app.state.backend is None:
            app.state.backend = await create_backend(settings)
        adapter = SyncAdapter(app.state.backend, order_by=settings.order_by)
        app.state.registry = SessionRegistry(adapter)
        logger.info(f"🍽️ Potluck RSVP ready ({app.state.backend.kind} backend)")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Unmount every view and release the backend"""
        if app.state.registry is not None:
            await app.state.registry.close_all()
        if app.state.backend is not None:
            await app.state.backend.close()
        logger.info("⏹️ Potluck RSVP stopped")

    app.include_router(routers.potluck.router, prefix="/api/potluck", tags=["potluck"])

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request):
        """The sign-up page"""
        return templates.TemplateResponse(
            request,
            "index.html",
            {"title": "Potluck RSVP", "create_label": FormLabels.CREATE_SUBMIT},
        )

    @app.get("/health")
    async def health_check():
        backend_kind = app.state.backend.kind if app.state.backend else None
        sessions = len(app.state.registry) if app.state.registry else 0
        return {
            "status": "healthy",
            "service": "potluck-rsvp",
            "version": "1.0.0",
            "backend": backend_kind,
            "sessions": sessions,
        }

    return app


logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
