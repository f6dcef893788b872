"""FastAPI application entry point"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from payment_webhooks.core.config import ENVIRONMENT, settings
from payment_webhooks.core.logging import setup_logging
from payment_webhooks.core.otel import (
    initialize_otel, setup_otel_logging, instrument_fastapi, instrument_sqlalchemy
)
from payment_webhooks.db.session import engine, init_db
from payment_webhooks.services.pipeline import build_components

# Import routers
from payment_webhooks.api import webhooks

SERVICE_NAME = "Payment Webhook Service"
SERVICE_VERSION = "1.0.0"

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    # Startup
    otel_initialized = initialize_otel()
    if otel_initialized:
        if setup_otel_logging():
            logger.info(f"OpenTelemetry fully initialized, exporting to {settings.OTEL_EXPORTER_OTLP_ENDPOINT}")
        else:
            logger.warning("OpenTelemetry metrics/traces initialized but logging setup failed")
    else:
        logger.info("OpenTelemetry not configured - running without distributed tracing")

    # Raises WebhookSecretMissingError, which aborts startup
    app.state.components = build_components(settings)
    logger.info(
        f"Webhook verification ready (timestamp tolerance {settings.WEBHOOK_TIMESTAMP_TOLERANCE}s, "
        f"timestamp required: {settings.REQUIRE_WEBHOOK_TIMESTAMP})"
    )

    logger.info("Initializing database...")
    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    instrument_sqlalchemy(engine)

    yield

    # Shutdown
    logger.info("Shutting down...")


# Create FastAPI app
app = FastAPI(
    title=SERVICE_NAME,
    description="Ingests signed payment events and stores them exactly once",
    version=SERVICE_VERSION,
    lifespan=lifespan
)

# Instrument FastAPI with OpenTelemetry
instrument_fastapi(app)

# Include routers
app.include_router(webhooks.router)


@app.exception_handler(404)
async def not_found_handler(request: Request, exc: Exception):
    """JSON body for unknown routes"""
    return JSONResponse(
        status_code=404,
        content={"error": "Not Found", "message": "The requested endpoint does not exist"}
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    message = str(exc) if ENVIRONMENT == "development" else "Something went wrong"
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "message": message}
    )


@app.get("/")
def service_info():
    """Service descriptor"""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "endpoints": {
            "health": "/webhooks/health",
            "webhook": "/webhooks/payment",
        },
    }


# Prometheus metrics endpoint
@app.get("/metrics")
def metrics_endpoint():
    """Prometheus metrics endpoint"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


# Health check endpoint
@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("payment_webhooks.main:app", host="0.0.0.0", port=8000)
