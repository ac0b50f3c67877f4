"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from ..app import Application
from ..logging_config import get_logger
from .routes import control, observability, webhook

logger = get_logger(__name__)


# Global application instance
_app: Application | None = None


def get_app() -> Application:
    """Get the global application instance."""
    global _app
    if not _app:
        _app = Application()
    return _app


def set_app(application: Application | None) -> None:
    """Replace the global application instance."""
    global _app
    _app = application


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan."""
    application: Application = app.state.application
    await application.start()
    yield
    await application.stop()


def create_fastapi_app(application: Application | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    if application is not None:
        set_app(application)
    application = get_app()

    fastapi_app = FastAPI(
        title="Ambient Sound Bot",
        description="Messenger webhook for picking an ambient sound",
        version="0.1.0",
        lifespan=lifespan,
    )
    fastapi_app.state.application = application

    fastapi_app.include_router(webhook.create_webhook_router(application))
    fastapi_app.include_router(observability.create_observability_router(application))
    fastapi_app.include_router(control.create_control_router(application))

    # Audio files are linked as <SERVER_URL>/<filename>.
    static_dir = application.settings.static_dir
    if static_dir.is_dir():
        fastapi_app.mount("/", StaticFiles(directory=static_dir), name="static")
    else:
        logger.warning("Static directory %s not found, audio links will not resolve", static_dir)

    return fastapi_app
