"""
Knowloop Backend API Server

FastAPI application for the study-session marketplace.
Serves session approval, bookings, gated materials, reviews and payments.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from knowloop import __version__
from knowloop.api.routes import booked_sessions, materials, notes, payments, sessions, users
from knowloop.config import Settings, get_settings
from knowloop.database import Database
from knowloop.errors import KnowloopError
from knowloop.services.identity import IdentityVerifier, JWTIdentityVerifier
from knowloop.services.payment_ledger import PaymentProcessor, StripePaymentProcessor

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Opens the storage handle on startup and closes it on shutdown.
    """
    logger.info("Starting Knowloop API server...")
    await app.state.database.open()

    yield

    logger.info("Shutting down Knowloop API server...")
    await app.state.database.close()


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    identity_verifier: Optional[IdentityVerifier] = None,
    payment_processor: Optional[PaymentProcessor] = None,
) -> FastAPI:
    """
    Build the application with its collaborators.

    Anything not supplied is constructed from settings.
    """
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.log_level)

    app = FastAPI(
        title="Knowloop API",
        description="Study-session marketplace: approvals, bookings, paid materials",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json"
    )

    app.state.settings = settings
    app.state.database = database or Database(settings.database_url)
    app.state.identity_verifier = identity_verifier or JWTIdentityVerifier(
        settings.identity_secret,
        algorithms=settings.identity_algorithms,
        audience=settings.identity_audience,
        issuer=settings.identity_issuer,
    )
    app.state.payment_processor = payment_processor or StripePaymentProcessor(
        settings.stripe_secret_key, currency=settings.payment_currency
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing"""
        start_time = time.time()

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Duration: {duration_ms:.2f}ms"
        )

        return response

    @app.exception_handler(KnowloopError)
    async def domain_exception_handler(request: Request, exc: KnowloopError):
        """Render domain errors with their status and the shared envelope"""
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_response()))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors"""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=jsonable_encoder({
                "success": False,
                "message": "Request validation failed",
                "error": {
                    "code": "VALIDATION_ERROR",
                    "details": exc.errors()
                }
            })
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle all uncaught exceptions"""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "message": "An internal server error occurred",
                "error": {
                    "code": "INTERNAL_ERROR",
                    "details": str(exc) if app.debug else None
                }
            }
        )

    @app.get("/health", tags=["Health"])
    async def health_check():
        """
        Health check endpoint.

        Returns server status and version information.
        """
        return {
            "success": True,
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "service": "knowloop-api"
        }

    @app.get("/", tags=["Root"])
    async def root():
        """API root endpoint"""
        return {
            "success": True,
            "message": "knowloop server running",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health"
        }

    app.include_router(users.router)
    app.include_router(sessions.router)
    app.include_router(booked_sessions.router)
    app.include_router(materials.router)
    app.include_router(notes.router)
    app.include_router(payments.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
