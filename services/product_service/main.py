"""
FastAPI application setup for the product-service.
Runs the user-deletion cascade consumer and publishes product events.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from services.product_service.events.handlers import UserDeletedHandler
from services.product_service.events.producer import ProductEventProducer
from services.product_service.events.registry import build_registry
from services.product_service.infrastructure.services import (
    database,
    kafka_client,
    ledger,
)
from services.product_service.interfaces.http.products import router as products_router
from shared.libs.events.consumer import ConsumerRunner
from shared.libs.events.topic_manager import TopicManager, required_topics
from shared.libs.events.topics import PRODUCT_SERVICE
from shared.libs.observability.logger_config import bind_service, log
from shared.libs.observability.metrics import create_metrics_endpoint

bind_service(PRODUCT_SERVICE)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan handler: runs on startup and shutdown.
    """
    log.info("Starting product-service initialization")
    runner = None
    try:
        database.init()
        kafka_client.connect()

        event_producer = ProductEventProducer(kafka_client.producer)
        registry = build_registry(UserDeletedHandler(database.session, event_producer))

        topic_manager = TopicManager(
            kafka_client.config, required_topics(PRODUCT_SERVICE, registry.groups())
        )
        if not topic_manager.create_topics():
            log.warning("Some topics may not have been created, but continuing anyway")

        runner = ConsumerRunner.for_client(registry, kafka_client, ledger=ledger)
        runner.start()
        app.state.event_producer = event_producer
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
        log.info("product-service shutdown complete")


app = FastAPI(
    title="product-service",
    description="Product service: product catalog and user-deletion cascade",
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


app.include_router(products_router)
metrics_endpoint = create_metrics_endpoint()
app.add_api_route("/metrics", metrics_endpoint, name="metrics", include_in_schema=False)
