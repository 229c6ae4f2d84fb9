"""
FastAPI application for the land valuation service.

Production deployment configuration via environment variables.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.errors import LandValuationError
from core.store import get_property_store
from core.valuation import __version__ as ENGINE_VERSION
from scraper import reset_listing_source, seed_store_if_empty
from utils.config import Config
from web.property_routes import router as property_router
from web.scrape_routes import router as scrape_router
from web.valuation_routes import router as valuation_router


logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


# =============================================================================
# Error responses
# =============================================================================


def error_response(status_code: int, message: str, error_type: str) -> JSONResponse:
    """{success: false, error: {message, type, code}}"""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {
                "message": message,
                "type": error_type,
                "code": status_code,
            },
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain and framework errors onto the shared error body."""

    @app.exception_handler(LandValuationError)
    async def handle_domain_error(request: Request, exc: LandValuationError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return error_response(exc.status_code, exc.message, exc.error_type)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            where = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{where}: {first.get('msg')}" if where else str(first.get("msg"))
        else:
            message = "Invalid request"
        return error_response(400, message, "ValidationError")

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Route not found: {request.url.path}"
        else:
            message = str(exc.detail)
        error_type = "NotFoundError" if exc.status_code == 404 else "HTTPError"
        return error_response(exc.status_code, message, error_type)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, "Internal Server Error", "Error")


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or Config.load()

    app = FastAPI(
        title="Land Valuation Engine",
        description="Comparable-based land value estimation",
        version=APP_VERSION,
        debug=config.debug,
    )

    # ==========================================================================
    # Healthcheck endpoints are registered first. They perform no IO and
    # return immediately.
    # ==========================================================================
    @app.get("/", include_in_schema=False)
    def root():
        """Root healthcheck. No dependencies, no IO."""
        return {"status": "ok"}

    @app.get("/health", include_in_schema=False)
    def health():
        """Secondary health endpoint. No dependencies, no IO."""
        return {"status": "healthy"}

    @app.get("/api/health")
    async def api_health():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": APP_VERSION,
            "engineVersion": ENGINE_VERSION,
            "geocoder": "google" if config.google_maps_api_key else "static",
        }

    if config.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.allowed_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)

    app.include_router(valuation_router)
    app.include_router(property_router)
    app.include_router(scrape_router)

    @app.on_event("startup")
    async def on_startup():
        """Seed an empty store on first run."""
        if config.seed_on_start:
            try:
                await seed_store_if_empty(get_property_store())
            except (OSError, ValueError) as e:
                logger.error("Seeding the property store failed: %s", e)
        logger.info("Land Valuation Engine started (%s)", config.to_dict())

    @app.on_event("shutdown")
    async def on_shutdown():
        """Close the shared listing source session."""
        reset_listing_source()

    return app


# Create app instance for uvicorn
app = create_app()
