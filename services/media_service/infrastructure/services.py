"""
Centralized service instances for the media-service.
"""

from services.media_service.config.config import config
from services.media_service.domain.models import Media
from services.media_service.infrastructure.storage.minio import MinioClient
from shared.libs.database.session import Database
from shared.libs.events.idempotency import ProcessedEvent, ProcessedEventLedger
from shared.libs.events.kafka_client import KafkaClient
from shared.libs.events.kafka_config import KafkaConfig

database = Database(config.DATABASE_URL, models=[Media, ProcessedEvent])
kafka_config = KafkaConfig(
    bootstrap_servers=config.KAFKA_BOOTSTRAP_SERVER, client_id="media-service"
)
kafka_client = KafkaClient(kafka_config)
minio_client = MinioClient(
    config.MINIO_ENDPOINT,
    access_key=config.MINIO_ACCESS_KEY,
    secret_key=config.MINIO_SECRET_KEY,
    bucket_name=config.MINIO_BUCKET_NAME,
    secure=config.MINIO_SECURE,
)
ledger = ProcessedEventLedger(database.session) if config.EVENT_DEDUP_ENABLED else None
