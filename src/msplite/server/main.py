"""MSP Lite server — FastAPI app the browser UI talks to."""

import logging
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI

from msplite import __version__
from msplite.api.router import api_router
from msplite.client.backend import BackendClient, BackendError
from msplite.core.config import AppSettings, get_settings
from msplite.session.controller import ScheduleSession

logger = logging.getLogger("msplite")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown."""
    session: ScheduleSession = app.state.session
    await session.client.connect()

    # Initial load; a failing backend must not stop the server from starting
    try:
        await session.load()
    except BackendError as e:
        logger.warning(f"Initial load of project {session.state.project_id} failed: {e}")

    yield

    await session.client.disconnect()
    logger.info("MSP Lite server stopped")


def create_app(
    settings: AppSettings | None = None,
    client: BackendClient | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    client = client or BackendClient(settings.backend_url, timeout=settings.backend_timeout)

    app = FastAPI(
        title="MSP Lite",
        description="Project schedule viewer/editor with dependency integrity checks",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session = ScheduleSession(
        client,
        project_id=settings.default_project_id,
        buffer_days=settings.buffer_days,
    )

    app.include_router(api_router)

    @app.get("/health")
    async def health():
        state = app.state.session.state
        return {
            "status": "ok",
            "version": __version__,
            "backend": settings.backend_url,
            "projectId": state.project_id,
            "loaded": state.status.value,
        }

    return app


def main():
    """Entry point for `msplite-server` command."""
    import sys

    settings = get_settings()
    configure_logging(settings.log_level)

    host = settings.host
    port = settings.port

    # Parse CLI args (simple, no dep on typer for the server)
    args = sys.argv[1:]
    for i, arg in enumerate(args):
        if arg == "--port" and i + 1 < len(args):
            port = int(args[i + 1])
        if arg == "--host" and i + 1 < len(args):
            host = args[i + 1]

    logger.info(f"Starting MSP Lite v{__version__} on {host}:{port}")
    logger.info(f"Backend: {settings.backend_url}")

    app = create_app(settings)
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level)


if __name__ == "__main__":
    main()
