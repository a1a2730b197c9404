"""
FastAPI application setup for the order-service.
Initializes the profile database and Kafka, and runs the profile-update,
status-change and analytics consumer groups in background threads.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from services.order_service.events.handlers import (
    CartUpdatedHandler,
    OrderCreatedHandler,
    OrderStatusChangedHandler,
)
from services.order_service.events.registry import build_registry
from services.order_service.infrastructure.services import (
    database,
    kafka_client,
    ledger,
    seller_profile_service,
    user_profile_service,
)
from services.order_service.interfaces.http.profiles import router as profiles_router
from shared.libs.events.consumer import ConsumerRunner
from shared.libs.events.topic_manager import TopicManager, required_topics
from shared.libs.events.topics import ORDER_SERVICE
from shared.libs.observability.logger_config import bind_service, log
from shared.libs.observability.metrics import create_metrics_endpoint

bind_service(ORDER_SERVICE)

registry = build_registry(
    OrderCreatedHandler(user_profile_service, seller_profile_service),
    OrderStatusChangedHandler(),
    CartUpdatedHandler(),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
        - Verifies the database and creates the profile tables
        - Connects to Kafka and provisions topics
        - Starts one worker thread set per consumer group

    Shutdown:
        - Stops the workers, flushes the producer, disposes the engine
    """
    log.info("Starting order-service initialization")
    runner = None
    try:
        database.init()
        kafka_client.connect()

        topic_manager = TopicManager(
            kafka_client.config, required_topics(ORDER_SERVICE, registry.groups())
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
        log.info("order-service shutdown complete")


app = FastAPI(
    title="order-service",
    description="Order service: buyer and seller analytics fed by order events",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for liveness probe.
    Verifies connectivity to the database and Kafka.
    """
    db_healthy = database.is_healthy()
    kafka_healthy = kafka_client.is_healthy()
    runner = getattr(app.state, "consumer_runner", None)
    consumers_running = runner is not None and runner.is_running()

    return {
        "status": "healthy"
        if db_healthy and kafka_healthy and consumers_running
        else "unhealthy",
        "database": "connected" if db_healthy else "disconnected",
        "kafka": "connected" if kafka_healthy else "disconnected",
        "consumers": "running" if consumers_running else "stopped",
    }


app.include_router(profiles_router)
metrics_endpoint = create_metrics_endpoint()
app.add_api_route("/metrics", metrics_endpoint, name="metrics", include_in_schema=False)
