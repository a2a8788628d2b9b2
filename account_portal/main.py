"""
Account Portal - FastAPI Application
Login, registration and account settings on top of Supabase
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from account_portal import __version__
from account_portal.mutations.invalidation import InvalidationBus
from account_portal.mutations.query import QueryCache
from account_portal.routes import auth, users
from account_portal.utils.config import get_settings
from account_portal.utils.logger import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    settings = get_settings()
    setup_logging(settings.logging_config_path, settings.log_level, settings.log_format, settings.environment)
    logger.info("Account Portal starting up...")
    settings.log_config()

    # One bus per process; every mutation and cached read shares it
    app.state.invalidation_bus = InvalidationBus()
    app.state.query_cache = QueryCache(app.state.invalidation_bus, max_entries=settings.query_cache_size)

    yield

    logger.info("Account Portal shutting down...")
    app.state.query_cache.clear()
    app.state.invalidation_bus.clear()


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Account Portal",
        description="Login, registration and account settings backed by Supabase",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        """Custom HTTP exception handler"""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": exc.detail,
                "status_code": exc.status_code
            },
            headers=getattr(exc, "headers", None)
        )

    @app.get("/health")
    async def health_check():
        """Service health check"""
        return {
            "status": "healthy",
            "service": "account-portal",
            "version": __version__,
            "supabase_configured": get_settings().is_configured()
        }

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "service": "Account Portal",
            "version": __version__,
            "description": "Login, registration and account settings",
            "docs": "/docs"
        }

    app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
    app.include_router(users.router, prefix="/users", tags=["Account Settings"])

    return app


app = create_app()
