"""Ingestion service main application."""

import asyncio
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
import structlog

from .api.routes import router as api_router
from .encoders.image_encoder import EmbeddingExtractor, ImageFeatureModel
from .pipelines.fetcher import ImageFetcher
from .pipelines.orchestrator import IngestionPipeline
from .runtime.metrics import get_metrics_collector
from libs.common.config import get_config
from libs.common.logging import configure_logging
from libs.vector_store.factory import create_vector_store_from_env

logger = structlog.get_logger("ingestion_service")

SERVICE_NAME = "ingestion-service"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    config = get_config("ingestion")
    configure_logging(SERVICE_NAME, config.ml_log_level, config.ml_log_format)
    app.state.config = config
    app.state.startup_time = time.time()

    logger.info("Starting ingestion service")

    app.state.metrics_collector = get_metrics_collector(SERVICE_NAME)

    # The model must be loaded before the first request is accepted
    model = ImageFeatureModel(
        model_name=config.ml_image_model,
        pretrained=config.ml_image_model_pretrained,
    )
    await asyncio.to_thread(model.load)
    app.state.model = model
    app.state.metrics_collector.set_model_loaded(model.model_name, True)

    app.state.vector_store = create_vector_store_from_env(config.vector_store_env())
    app.state.fetcher = ImageFetcher(timeout=config.ml_fetch_timeout_seconds)

    app.state.pipeline = IngestionPipeline(
        fetcher=app.state.fetcher,
        extractor=EmbeddingExtractor(model),
        vector_store=app.state.vector_store,
        namespace=config.ml_vector_namespace,
        metrics_collector=app.state.metrics_collector,
    )

    logger.info(
        "Ingestion service started successfully",
        model_name=model.model_name,
        vector_backend=config.ml_vector_backend,
        vector_dimension=config.ml_vector_dimension,
    )

    yield

    # Shutdown
    logger.info("Shutting down ingestion service")
    await app.state.fetcher.close()
    await app.state.vector_store.close()
    logger.info("Ingestion service shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Image Ingestion Service",
    description="Turns image URLs into embeddings and upserts them into a vector index",
    version="0.1.0",
    lifespan=lifespan
)

# Mounted without a version prefix; clients post to /upload
app.include_router(api_router)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Collect metrics for HTTP requests."""
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    if hasattr(app.state, 'metrics_collector'):
        app.state.metrics_collector.record_http_request(
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code,
            duration=duration
        )

    response.headers["X-Process-Time"] = str(duration)
    return response


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    model = getattr(app.state, "model", None)
    if model is not None and model.is_loaded:
        return {"status": "healthy", "service": SERVICE_NAME}
    return JSONResponse(
        status_code=503,
        content={"status": "unhealthy", "service": SERVICE_NAME}
    )


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    if hasattr(app.state, 'metrics_collector'):
        metrics_data = app.state.metrics_collector.get_metrics()
        return Response(content=metrics_data, media_type="text/plain")
    else:
        return Response(content="# No metrics available\n", media_type="text/plain")


@app.get("/live")
async def liveness():
    """Liveness probe. Returns quickly if process is responsive."""
    return {
        "status": "alive",
        "service": SERVICE_NAME,
        "uptime_seconds": time.time() - getattr(app.state, "startup_time", time.time())
    }


@app.get("/ready")
async def readiness():
    """Readiness probe. Validates the model and vector store are available."""
    try:
        model = getattr(app.state, "model", None)
        if model is None or not model.is_loaded:
            raise RuntimeError("Image feature model not loaded")

        if not await app.state.vector_store.health_check():
            raise RuntimeError("Vector store reports unhealthy state")

        return {
            "status": "ready",
            "service": SERVICE_NAME,
            "model": model.info(),
        }
    except Exception as exc:
        logger.error("Readiness probe failed", error=str(exc))
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "service": SERVICE_NAME,
                "error": str(exc)
            }
        )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": SERVICE_NAME,
        "version": "0.1.0",
        "status": "running",
        "endpoints": {
            "upload": "/upload",
            "metrics": "/metrics",
        },
        "probes": {
            "health": "/health",
            "live": "/live",
            "ready": "/ready"
        }
    }


def run() -> None:
    """Console entry point."""
    config = get_config("ingestion")
    uvicorn.run(
        "service_ingestion.app.main:app",
        host=config.ml_ingestion_host,
        port=config.ml_ingestion_port,
        log_level=config.ml_log_level.lower(),
    )


if __name__ == "__main__":
    run()
