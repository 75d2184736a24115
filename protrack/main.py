"""ProTrack API entrypoint."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from protrack import __version__
from protrack.api.router import api_router
from protrack.core.config import Settings, get_settings
from protrack.core.logging import configure_logging

logger = logging.getLogger(__name__)


def _install_cors(app: FastAPI, settings: Settings) -> None:
    if not settings.allowed_origins:
        logger.warning("No CORS origins configured; browser clients will be rejected")
        return
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "X-Tenant-ID", "X-User-Email", "X-User-Name"],
        expose_headers=["Content-Disposition"],
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the ProTrack application for the given (or environment) settings."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=None,
    )
    _install_cors(app, settings)
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/", tags=["system"])
    def root() -> dict[str, str]:
        return {"service": settings.app_name, "version": __version__, "status": "running"}

    logger.info("%s %s ready (env=%s, prefix=%s)", settings.app_name, __version__, settings.app_env, settings.api_prefix)
    return app


app = create_app()
