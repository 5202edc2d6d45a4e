"""
FastAPI application for the venuefinder service.

This is the HTTP API the mobile client talks to.

Run with: uvicorn venuefinder.api.app:app --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from venuefinder.config import get_jwt_secret, get_settings
from venuefinder.errors import ValidationError, VenueFinderError
from venuefinder.integrations.sentry import capture_exception, init_sentry
from venuefinder.storage import StorageProvider, create_local_storage

logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan
# =============================================================================


def _lifespan(storage: StorageProvider | None):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Validate configuration and build shared resources once."""
        settings = get_settings()
        
        # Fails startup in production without JWT_SECRET
        get_jwt_secret()
        
        if init_sentry():
            logger.info("Sentry error tracking enabled")
        
        app.state.storage = storage or create_local_storage()
        
        logger.info(f"Venuefinder API starting in {settings.environment} mode")
        yield
        logger.info("Venuefinder API shutting down")
    
    return lifespan


# =============================================================================
# Error Handlers
# =============================================================================


def _error_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "error": code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Every error leaves the API in the same envelope:
    
        {"success": false, "message": "...", "error": "<code>"}
    """
    
    @app.exception_handler(VenueFinderError)
    async def handle_app_error(request: Request, exc: VenueFinderError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} → {exc.status_code} {exc.code}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())
    
    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        err = ValidationError.from_field_errors(exc.errors())
        logger.info(f"Validation error on {request.url.path}: {err.message}")
        return JSONResponse(status_code=err.status_code, content=err.to_envelope())
    
    @app.exception_handler(PydanticValidationError)
    async def handle_model_validation(request: Request, exc: PydanticValidationError):
        err = ValidationError.from_field_errors(exc.errors())
        return JSONResponse(status_code=err.status_code, content=err.to_envelope())
    
    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            return _error_response(404, "Route not found", "not_found")
        return _error_response(exc.status_code, str(exc.detail), "http_error")
    
    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        capture_exception(exc, path=request.url.path, method=request.method)
        return _error_response(500, "Internal server error", "server_error")


# =============================================================================
# App Setup
# =============================================================================


def create_app(storage: StorageProvider | None = None) -> FastAPI:
    """
    Build the application.
    
    Pass `storage` to run against a specific backend (tests do);
    otherwise the in-memory store is created at startup.
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    
    app = FastAPI(
        title="Venuefinder API",
        description="Venue discovery and booking backend",
        version="0.1.0",
        lifespan=_lifespan(storage),
    )
    
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    
    register_exception_handlers(app)
    
    from venuefinder.auth.routes import router as auth_router
    from venuefinder.api import menus, offers, packages, profile, reviews, staff, venues
    
    app.include_router(auth_router)
    app.include_router(venues.router)
    app.include_router(offers.router)
    app.include_router(menus.router)
    app.include_router(packages.router)
    app.include_router(reviews.router)
    app.include_router(staff.router)
    app.include_router(profile.router)
    
    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "venuefinder-api"}
    
    @app.get("/")
    async def root():
        return {"message": "Welcome to Venue Finder API"}
    
    return app


app = create_app()
