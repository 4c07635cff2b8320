"""
Main FastAPI application for boardbridge
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import is_production, settings
from ..database import init_database
from ..errors import BridgeError
from ..host.identity import HostTokenVerifier
from ..logging import configure_logging, get_logger
from ..middleware import SessionLoggingMiddleware
from ..service import BridgeService, create_bridge_service

# Configure logging before creating logger
configure_logging(debug=settings.debug)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting boardbridge API...")
    init_database()
    logger.info("Database initialized")

    if getattr(app.state, "bridge_service", None) is None:
        app.state.bridge_service = create_bridge_service()
        logger.info("Session bridge initialized", auth_provider=settings.auth_provider)

    # Run comprehensive startup validation
    try:
        from ..validation import (
            ValidationError,
            get_startup_recommendations,
            validate_startup_configuration,
        )

        validation_results = await validate_startup_configuration()

        if not validation_results["overall_valid"]:
            logger.error(
                "Application configuration validation failed - sessions may not bootstrap",
                database_errors=validation_results["database"].get("errors", []),
                auth_errors=validation_results["auth"].get("errors", []),
            )

            if is_production():
                raise ValidationError("Critical configuration validation failed in production")

        recommendations = get_startup_recommendations(validation_results)
        if recommendations:
            logger.info("Configuration recommendations", recommendations=recommendations)

    except ValidationError:
        # Re-raise validation errors to fail startup
        raise
    except Exception as e:
        logger.error(
            "Unexpected error during startup validation",
            error=str(e),
            note="Application will continue but may have configuration issues",
        )

    yield

    # Shutdown
    logger.info("Shutting down boardbridge API...")


async def bridge_error_handler(request: Request, exc: BridgeError) -> JSONResponse:
    """Render pipeline failures as ``{"error": kind, "message": ...}``."""
    logger.info(
        "Session request rejected",
        path=request.url.path,
        error_kind=exc.kind,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(
    bridge_service: BridgeService | None = None,
    host_token_verifier: HostTokenVerifier | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="boardbridge API",
        description="Session bridge between a host board platform and the application directory",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.bridge_service = bridge_service

    if host_token_verifier is None and settings.host_app_secret:
        host_token_verifier = HostTokenVerifier(
            settings.host_app_secret, audience=settings.host_app_client_id
        )
    app.state.host_token_verifier = host_token_verifier

    app.add_exception_handler(BridgeError, bridge_error_handler)

    # Per-request session log context
    app.add_middleware(SessionLoggingMiddleware)

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check endpoint
    @app.get("/health")
    async def health_check():  # pyright: ignore [reportUnusedFunction]
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    from .endpoints import session

    app.include_router(session.router, prefix="/api/session", tags=["Session"])

    return app


# Create the main application instance
app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "boardbridge.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )
