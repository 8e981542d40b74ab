from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
from contextlib import asynccontextmanager
from typing import Optional
from loguru import logger
from sqlalchemy.orm import sessionmaker

from syncscript.api import api_router
from syncscript.api.health import router as health_router
from syncscript.core.config import Settings, get_database_url, get_settings
from syncscript.core.logging_config import configure_logging, RequestLoggingMiddleware
from syncscript.core.error_handlers import (
    api_error_handler,
    http_exception_handler,
    validation_error_handler,
    database_error_handler,
    general_exception_handler,
    APIError,
)
from syncscript.db.cache import CacheConfig, RedisCache
from syncscript.db.database import build_engine, build_session_factory, init_db
from syncscript.services.channel_access import ChannelAccess
from syncscript.services.container import ServiceContainer
from syncscript.services.metadata_service import MetadataFetcher
from syncscript.services.storage_service import ObjectStorage
from syncscript.websocket import ChannelManager, ChannelServer
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError

_DEFAULT = object()


def _build_cache(settings: Settings) -> Optional[RedisCache]:
    if not settings.cache_enabled:
        return None
    return RedisCache(CacheConfig(
        url=settings.redis_url,
        socket_timeout=settings.cache_socket_timeout,
        socket_connect_timeout=settings.cache_socket_timeout,
        default_ttl=settings.cache_ttl_seconds
    ))


def create_app(
    settings: Optional[Settings] = None,
    cache=_DEFAULT,
    storage: Optional[ObjectStorage] = None,
    metadata_fetcher=_DEFAULT,
    channel: Optional[ChannelManager] = None,
    session_factory: Optional[sessionmaker] = None
) -> FastAPI:
    """
    Build the application and every long-lived collaborator it uses.

    Collaborators can be passed in to replace the ones built from settings;
    ``cache=None`` runs without a cache. Without a session factory one is
    built on ``settings.database_url``; HTTP routes and the socket layer both
    use it.
    """
    settings = settings or get_settings()
    if session_factory is None:
        session_factory = build_session_factory(build_engine(get_database_url(settings)))
    if cache is _DEFAULT:
        cache = _build_cache(settings)
    if metadata_fetcher is _DEFAULT:
        metadata_fetcher = MetadataFetcher(
            timeout=settings.metadata_fetch_timeout,
            user_agent=settings.metadata_user_agent
        )
    channel = channel or ChannelManager()
    services = ServiceContainer.build(
        settings,
        channel=channel,
        storage=storage or ObjectStorage.from_settings(settings),
        cache=cache,
        metadata_fetcher=metadata_fetcher
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan events for the FastAPI application
        """
        configure_logging(settings)
        logger.info(f"Starting {settings.app_name} ({settings.environment})...")

        with session_factory() as session:
            init_db(bind=session.get_bind())
        logger.info("Database initialized successfully")
        if services.cache is None:
            logger.info("Cache disabled")

        yield

        logger.info(f"Shutting down {settings.app_name}...")
        if services.cache is not None:
            await services.cache.close()

    app = FastAPI(
        title=settings.app_name,
        description="Collaborative knowledge vaults with anchored annotations and live updates",
        version=settings.app_version,
        docs_url="/docs" if settings.enable_docs else None,
        redoc_url="/redoc" if settings.enable_docs else None,
        lifespan=lifespan
    )
    app.state.services = services
    app.state.session_factory = session_factory
    app.state.channel_server = ChannelServer(
        channel,
        ChannelAccess(session_factory, services.users, services.membership),
        cors_allowed_origins="*" if "*" in settings.allowed_origins else settings.allowed_origins
    )

    # Add request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=settings.allow_credentials,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(health_router)
    app.include_router(api_router, prefix="/api")

    @app.get("/")
    async def root():
        """
        Root endpoint with API information
        """
        return {
            "message": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs" if settings.enable_docs else None,
            "health": "/health",
            "realtime": "/socket.io"
        }

    return app


app = create_app()

# Socket.IO in front, FastAPI for everything that is not /socket.io
asgi_app = app.state.channel_server.asgi_app(app)


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "syncscript.main:asgi_app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
