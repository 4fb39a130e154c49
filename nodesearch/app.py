"""Application web nodesearch.

Expose les opérations de découverte (memcached, RabbitMQ) en HTTP.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from nodesearch.config.logging_config import get_logger, setup_logging
from nodesearch.config.search_config import get_settings, validate_config
from nodesearch.api.discovery import router as discovery_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Vérifie la configuration au démarrage."""
    for error in validate_config(get_settings()):
        logger.warning(f"Configuration: {error}")
    yield


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(
        title="nodesearch",
        description="Découverte des serveurs memcached et brokers RabbitMQ de la flotte",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.include_router(discovery_router)
    return app
