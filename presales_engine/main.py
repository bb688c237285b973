from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from presales_engine.components.base.config import get_settings
from presales_engine.components.base.logging import configure_logging, get_logger
from presales_engine.components.jobs.router import router as jobs_router
from presales_engine.components.timeline_estimation.router import router as timeline_router
from presales_engine.container import build_container


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    settings = get_settings()
    configure_logging(settings.environment)
    logger = get_logger("main")

    logger.info("Starting Presales Assessment API", version=settings.app_version)

    container = build_container(settings)
    app.state.container = container

    # Verify Ollama connection (non-blocking)
    if await container.llm_client.verify_connection():
        logger.info("Ollama connection verified")
    else:
        logger.warning("Ollama not available - AI stages will fail and timelines will use the fallback")

    await container.worker.start()

    yield

    logger.info("Shutting down Presales Assessment API")
    await container.worker.stop()


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount component routers
app.include_router(jobs_router, prefix="/api/v1")
app.include_router(timeline_router, prefix="/api/v1")


@app.get("/api/v1/health")
async def health_check():
    """Health check endpoint."""
    container = app.state.container
    ollama_ok = await container.llm_client.verify_connection()
    return {
        "status": "healthy",
        "version": settings.app_version,
        "ollama": "connected" if ollama_ok else "unavailable",
        "worker": "running" if container.worker.is_running else "stopped",
        "queued_jobs": container.queue.depth,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("presales_engine.main:app", host=settings.host, port=settings.port, reload=True)
