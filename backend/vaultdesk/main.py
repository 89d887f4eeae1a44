"""
Vault Request Desk - FastAPI Application

Requesters draft vault changes against a ticket; administrators review the
stored draft and execute or reject it.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from .config.settings import settings
from .api.routes import api_router
from .api.middleware import CorrelationIdMiddleware, register_error_handlers
from .repositories.mongo_client import create_indexes, close_connection, health_check
from .utils.logger import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)

APP_NAME = "Vault Request Desk"
APP_VERSION = "1.0.0"
API_PREFIX = "/api/v1"


# =============================================================================
# Application Lifecycle
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Prepare the stored request collection on startup, release the Mongo
    client on shutdown. The API still starts when MongoDB is down; /health
    reports it as degraded.
    """
    logger.info(f"Starting {APP_NAME} {APP_VERSION}")
    try:
        create_indexes()
    except PyMongoError as e:
        logger.error(f"Stored request indexes not created: {e}")

    yield

    close_connection()
    logger.info(f"{APP_NAME} stopped")


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """
    Build the FastAPI application.

    Interactive docs are only served when settings.debug is on.

    Returns:
        Configured FastAPI application instance
    """
    docs_enabled = settings.debug
    application = FastAPI(
        title=APP_NAME,
        description="Ticket-driven vault secret requests with requester/administrator approval",
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/api/docs" if docs_enabled else None,
        redoc_url="/api/redoc" if docs_enabled else None,
        openapi_url="/api/openapi.json" if docs_enabled else None,
    )

    _add_middleware(application)
    register_error_handlers(application)
    application.include_router(api_router, prefix=API_PREFIX)
    _add_service_routes(application)

    return application


def _add_middleware(app: FastAPI) -> None:
    # Browsers reject credentialed requests against a wildcard origin
    wildcard = settings.cors_origins.strip() == "*"
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if wildcard else settings.cors_origins_list,
        allow_credentials=not wildcard,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-Id"],
    )
    app.add_middleware(CorrelationIdMiddleware)


def _add_service_routes(app: FastAPI) -> None:
    @app.get("/health", tags=["Health"])
    async def health():
        """Liveness plus MongoDB reachability"""
        mongo = health_check()
        return {
            "status": "healthy" if mongo["status"] == "healthy" else "degraded",
            "version": APP_VERSION,
            "environment": settings.environment,
            "mongo": mongo,
        }

    @app.get("/", tags=["Health"])
    async def root():
        return {
            "name": APP_NAME,
            "version": APP_VERSION,
            "api": API_PREFIX,
            "docs": "/api/docs" if settings.debug else None,
        }


app = create_app()
