"""HTTP server for the workspace supervisor.

Builds the Starlette application around a WorkspaceService and serves it
with uvicorn. The service is stored in app.state so tests can substitute
their own.
"""

import contextlib
import logging
from collections.abc import AsyncIterator

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from pulsecode import __version__
from pulsecode.core.config import PulseCodeConfig
from pulsecode.dashboard.routes import API_ROUTES
from pulsecode.dashboard.service import WorkspaceService

logger = logging.getLogger(__name__)


async def health(request: Request) -> JSONResponse:
    """GET /api/health - Liveness probe."""
    service: WorkspaceService = request.app.state.service
    return JSONResponse({
        "status": "ok",
        "version": __version__,
        "workspaces": len(service.registry),
        "subscribers": service.broadcaster.subscriber_count,
    })


def create_app(
    config: PulseCodeConfig | None = None,
    service: WorkspaceService | None = None,
) -> Starlette:
    """Create the Starlette application.

    Args:
        config: Configuration; defaults are used when None.
        service: Pre-built service; built from config when None.

    Returns:
        Starlette app with service and config in app.state.

    """
    config = config or PulseCodeConfig()

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        logger.info("PulseCode server started on %s:%d", config.host, config.port)
        yield
        logger.info("Shutting down, stopping all sessions")
        await app.state.service.shutdown()

    app = Starlette(
        routes=[Route("/api/health", health, methods=["GET"]), *API_ROUTES],
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.service = service or WorkspaceService.from_config(config)
    return app


def run_server(config: PulseCodeConfig, host: str | None = None, port: int | None = None) -> None:
    """Serve the application until interrupted.

    Args:
        config: Loaded configuration.
        host: Bind address override.
        port: Port override.

    """
    import uvicorn

    app = create_app(config)
    uvicorn.run(
        app,
        host=host or config.host,
        port=port or config.port,
        log_level=config.log_level.lower(),
    )
