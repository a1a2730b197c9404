"""
Centralized service instances for the product-service.
"""

from services.product_service.config.config import config
from services.product_service.domain.models import Product
from shared.libs.database.session import Database
from shared.libs.events.idempotency import ProcessedEvent, ProcessedEventLedger
from shared.libs.events.kafka_client import KafkaClient
from shared.libs.events.kafka_config import KafkaConfig

database = Database(config.DATABASE_URL, models=[Product, ProcessedEvent])
kafka_config = KafkaConfig(
    bootstrap_servers=config.KAFKA_BOOTSTRAP_SERVER, client_id="product-service"
)
kafka_client = KafkaClient(kafka_config)
ledger = ProcessedEventLedger(database.session) if config.EVENT_DEDUP_ENABLED else None
