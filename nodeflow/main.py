"""FastAPI application hosting the execution core.

Serves status streams and health, owns the cache connection and, when
Temporal is enabled, runs a Temporal worker in the background.

``app.state.trigger`` is the entry point event ingress calls with a trigger
event: the Temporal executor when Temporal is enabled, the in-process driver
otherwise.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from nodeflow.core.container import container
from nodeflow.core.logging import configure_logging, get_logger
from nodeflow.routers import websocket
from nodeflow.services.temporal import TemporalExecutor, TemporalWorkerManager

settings = container.settings()
configure_logging(settings)
logger = get_logger(__name__)

# Suppress noisy loggers
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting nodeflow")

    await container.cache().startup()
    driver = container.driver()
    app.state.trigger = driver.run

    worker_manager = None
    if settings.temporal_enabled:
        executor = await TemporalExecutor.connect(settings)
        worker_manager = TemporalWorkerManager(executor.client, driver, settings.temporal_task_queue)
        await worker_manager.start()
        app.state.trigger = executor.trigger
        logger.info("Temporal execution enabled", task_queue=settings.temporal_task_queue)

    logger.info("Services started successfully",
                executors=sorted(container.registry().node_types))
    yield

    if worker_manager is not None:
        await worker_manager.stop()
    await container.cache().shutdown()
    logger.info("Services shutdown complete")


app = FastAPI(
    title="nodeflow",
    version="0.1.0",
    description="Workflow execution core with durable steps and live node status",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

app.include_router(websocket.router)


@app.get("/health")
async def health_check():
    """Liveness probe."""
    return {
        "status": "OK",
        "service": "nodeflow",
        "redis_enabled": container.cache().is_redis_available(),
        "temporal_enabled": settings.temporal_enabled,
        "timestamp": datetime.now().isoformat(),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("nodeflow.main:app", host=settings.host, port=settings.port, reload=settings.debug)
