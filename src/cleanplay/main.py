"""ASGI entry point.

    uvicorn cleanplay.main:app
    cleanplay            # console script, same thing with settings-driven defaults
"""

import uvicorn
from fastapi import FastAPI

from cleanplay import __version__
from cleanplay.api import api_router
from cleanplay.config import get_settings
from cleanplay.infrastructure.lifecycle import lifespan


def create_app() -> FastAPI:
    """Build the FastAPI app; workers are started by the lifespan."""
    settings = get_settings()
    app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
    app.include_router(api_router)
    return app


app = create_app()


def run() -> None:
    """Console script: serve the app with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "cleanplay.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
