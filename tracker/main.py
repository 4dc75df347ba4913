"""
Project Tracker - FastAPI Application

Wires the tracker together:
- loads TrackerConfig (defaults, YAML file, environment)
- opens the document store once and hands it to the stores
- builds the lifecycle service and identity provider
- mounts the auth/project/task routers under the API prefix
- serves "/" and "/health" for liveness checks

Run with:
    python -m tracker.main
or:
    uvicorn tracker.main:create_app --factory
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI

from . import SERVICE_NAME, __version__
from .api import ROUTERS, register_error_handlers
from .config import TrackerConfig, load_config
from .document_store import DocumentStore
from .identity import IdentityProvider
from .lifecycle_service import LifecycleService
from .models import MAX_PROJECTS_PER_OWNER
from .project_store import ProjectStore
from .task_store import TaskStore

# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger("tracker")


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


# -----------------------------------------------------------------------------
# Application Factory
# -----------------------------------------------------------------------------
def create_app(config: Optional[TrackerConfig] = None) -> FastAPI:
    """Build a FastAPI app with its own store, service and identity provider."""
    config = config or load_config()
    configure_logging(config.log_level)

    store = DocumentStore(config.data_dir, timeout_seconds=config.store_timeout_seconds)
    lifecycle_service = LifecycleService(
        projects=ProjectStore(store),
        tasks=TaskStore(store),
        atomic_quota_check=config.atomic_quota_check,
    )
    identity_provider = IdentityProvider(store, session_expiry_hours=config.session_expiry_hours)

    app = FastAPI(
        title=f"{SERVICE_NAME} API",
        description="Multi-tenant project and task lifecycle service",
        version=__version__,
    )
    app.state.config = config
    app.state.document_store = store
    app.state.lifecycle_service = lifecycle_service
    app.state.identity_provider = identity_provider

    register_error_handlers(app)
    for router in ROUTERS:
        app.include_router(router, prefix=config.api_prefix)

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------
    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {
            "service": SERVICE_NAME,
            "status": "running",
            "version": __version__,
        }

    @app.get("/health")
    async def health_check():
        """Detailed health check."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "components": {
                "api": "operational",
                "data_dir": str(config.data_dir),
                "data_dir_exists": config.data_dir.exists(),
            },
            "limits": {
                "max_projects_per_owner": MAX_PROJECTS_PER_OWNER,
                "atomic_quota_check": config.atomic_quota_check,
            },
        }

    logger.info(
        f"Tracker app created (data_dir={config.data_dir}, prefix={config.api_prefix or '/'})"
    )
    return app


if __name__ == "__main__":
    import uvicorn

    settings = load_config()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
