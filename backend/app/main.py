"""Media gallery FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app import __version__
from app.config import settings
from app.services import init_services, shutdown_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    # === STARTUP ===
    _setup_logging()

    if not settings.uses_bucket:
        Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)

    await init_services()
    logger.info(
        "%s v%s started — listening on %s:%s (storage: %s)",
        settings.app_name, __version__, settings.host, settings.port, settings.storage_backend,
    )

    try:
        yield
    finally:
        # === SHUTDOWN ===
        await shutdown_services()
        logger.info("%s shutting down", settings.app_name)


def _setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Noisy third-party loggers to WARNING
    for noisy in ("boto3", "botocore", "s3transfer", "urllib3", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def create_app() -> FastAPI:
    """Application factory."""
    from app.api.routes import api_router
    from app.web.pages import router as pages_router

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        debug=settings.debug,
        lifespan=_lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount API routes
    app.include_router(api_router, prefix=settings.api_prefix)
    app.include_router(pages_router)

    # Local backend: stored files are plain static files
    if not settings.uses_bucket:
        app.mount(
            "/media",
            StaticFiles(directory=settings.upload_dir, check_dir=False),
            name="media",
        )
        logger.info("Serving local uploads from %s", settings.upload_dir)

    return app


app = create_app()


def run(**kwargs: Any) -> None:
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=settings.uvicorn_workers,
        log_level=settings.log_level.lower(),
        **kwargs,
    )


if __name__ == "__main__":
    run()
