"""
FastAPI application setup for the user-service.
Publishes user events; consumes none.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from services.user_service.events.producer import UserEventProducer
from services.user_service.infrastructure.services import database, kafka_client
from services.user_service.interfaces.http.users import router as users_router
from shared.libs.events.topic_manager import TopicManager, required_topics
from shared.libs.events.topics import USER_SERVICE
from shared.libs.observability.logger_config import bind_service, log
from shared.libs.observability.metrics import create_metrics_endpoint

bind_service(USER_SERVICE)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan handler: runs on startup and shutdown.
    """
    log.info("Starting user-service initialization")
    try:
        database.init()
        kafka_client.connect()

        topic_manager = TopicManager(
            kafka_client.config, required_topics(USER_SERVICE, [])
        )
        if not topic_manager.create_topics():
            log.warning("Some topics may not have been created, but continuing anyway")

        app.state.event_producer = UserEventProducer(kafka_client.producer)

        yield

    except Exception as e:
        log.exception("Failed to initialize dependencies", error=str(e))
        raise

    finally:
        kafka_client.close()
        database.dispose()
        log.info("user-service shutdown complete")


app = FastAPI(
    title="user-service",
    description="User service: account lifecycle and user events",
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


app.include_router(users_router)
metrics_endpoint = create_metrics_endpoint()
app.add_api_route("/metrics", metrics_endpoint, name="metrics", include_in_schema=False)
