"""
FastAPI application setup for the media-service.
Runs the product- and user-deletion cascade consumers.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from services.media_service.events.handlers import (
    ProductEventHandler,
    UserDeletedHandler,
)
from services.media_service.events.registry import build_registry
from services.media_service.infrastructure.services import (
    database,
    kafka_client,
    ledger,
    minio_client,
)
from shared.libs.events.consumer import ConsumerRunner
from shared.libs.events.topic_manager import TopicManager, required_topics
from shared.libs.events.topics import MEDIA_SERVICE
from shared.libs.observability.logger_config import bind_service, log
from shared.libs.observability.metrics import create_metrics_endpoint

bind_service(MEDIA_SERVICE)

registry = build_registry(
    ProductEventHandler(database.session, minio_client),
    UserDeletedHandler(database.session, minio_client),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan handler: runs on startup and shutdown.
    """
    log.info("Starting media-service initialization")
    runner = None
    try:
        database.init()
        minio_client.ensure_bucket()
        kafka_client.connect()

        topic_manager = TopicManager(
            kafka_client.config, required_topics(MEDIA_SERVICE, registry.groups())
        )
        if not topic_manager.create_topics():
            log.warning("Some topics may not have been created, but continuing anyway")

        runner = ConsumerRunner.for_client(registry, kafka_client, ledger=ledger)
        runner.start()
        app.state.consumer_runner = runner

        yield

    except Exception as e:
        log.exception("Failed to initialize dependencies", error=str(e))
        raise

    finally:
        if runner is not None:
            runner.stop()
        kafka_client.close()
        database.dispose()
        log.info("media-service shutdown complete")


app = FastAPI(
    title="media-service",
    description="Media service: media metadata and storage cleanup",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check():
    """Health check endpoint for liveness probe."""
    db_healthy = database.is_healthy()
    kafka_healthy = kafka_client.is_healthy()

    return {
        "status": "healthy" if db_healthy and kafka_healthy else "unhealthy",
        "database": "connected" if db_healthy else "disconnected",
        "kafka": "connected" if kafka_healthy else "disconnected",
    }


metrics_endpoint = create_metrics_endpoint()
app.add_api_route("/metrics", metrics_endpoint, name="metrics", include_in_schema=False)
