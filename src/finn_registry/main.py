"""
Main FastAPI application for Finn Registry.

This module creates and configures the FastAPI application with all
middleware, routes, and error handlers.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .api import router as api_router, build_services
from .auth import AuthenticationMiddleware
from .core import (
    get_logger,
    get_settings,
    setup_logging,
    Settings,
    RegistryError,
    ValidationError,
    log_error,
    log_request_start,
    log_request_end,
)
from .storage import RegistryStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger = get_logger(__name__)
    services = app.state.services
    settings = services.settings

    # Initialize logging
    setup_logging(settings.logging, api_key_prefix=settings.auth.api_key_prefix)

    logger.info(
        "Starting Finn Registry",
        version=settings.app_version,
        environment=settings.environment,
        oauth_configured=settings.auth.is_oauth_configured(),
    )

    # Sessions are only deleted on logout; sweep expired rows on startup
    try:
        expired_sessions = services.sessions.purge_expired()
        logger.info("Cleanup completed", expired_sessions=expired_sessions)
    except Exception as e:
        logger.warning("Cleanup failed", error=str(e))

    yield

    # Shutdown
    await services.aclose()
    logger.info("Shutting down Finn Registry")


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[RegistryStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Application settings (defaults to the environment)
        store: Registry store (defaults to the configured JSON store)
        transport: Optional httpx transport for GitHub calls

    Returns:
        Configured application
    """
    settings = settings or get_settings()

    # Create FastAPI app
    app = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )
    app.state.services = build_services(settings, store=store, transport=transport)

    # Add request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    # Add authentication middleware
    app.add_middleware(
        AuthenticationMiddleware,
        resolver_factory=lambda request: request.app.state.services.resolver,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=settings.server.cors_methods,
        allow_headers=settings.server.cors_headers,
    )

    # Include API routers
    app.include_router(api_router)

    # Add health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "timestamp": time.time()
        }

    # Add error handlers
    @app.exception_handler(RegistryError)
    async def registry_error_handler(request: Request, exc: RegistryError):
        """Handle registry errors."""
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        """Report malformed request bodies as 400."""
        error = ValidationError(
            "Invalid request data",
            error_code="invalid_request",
            details={"errors": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
                for err in exc.errors()
            ]},
        )
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "message": exc.detail,
                    "type": "http_error"
                }
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger = get_logger(__name__)
        log_error(
            logger,
            exc,
            context={
                "method": request.method,
                "url": str(request.url.path),
                "client": request.client.host if request.client else "unknown"
            }
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "message": "Internal server error",
                    "type": "internal_error"
                }
            }
        )

    return app


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests."""

    def __init__(self, app):
        super().__init__(app)
        self.logger = get_logger(__name__)

    async def dispatch(self, request: Request, call_next):
        """Process request with logging."""
        start_time = time.time()

        # Context is attached by the authentication middleware
        context = getattr(request.state, "context", None)

        # Log request start
        log_request_start(
            self.logger,
            method=request.method,
            path=request.url.path,
            client_ip=context.client_ip if context else "unknown",
            user_agent=request.headers.get("user-agent"),
        )

        # Process request
        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as e:
            self.logger.error(
                "Request processing failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
            )
            raise

        # Log request end
        duration_ms = (time.time() - start_time) * 1000
        log_request_end(
            self.logger,
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=duration_ms,
            authenticated=bool(context and context.authenticated)
        )

        return response


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "finn_registry.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.reload,
        workers=settings.server.workers if not settings.server.reload else 1,
        log_level=settings.logging.level.lower(),
        access_log=False,  # We handle logging ourselves
    )
