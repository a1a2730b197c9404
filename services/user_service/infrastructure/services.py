"""
Centralized service instances for the user-service.
"""

from services.user_service.config.config import config
from services.user_service.domain.models import User
from shared.libs.database.session import Database
from shared.libs.events.kafka_client import KafkaClient
from shared.libs.events.kafka_config import KafkaConfig

database = Database(config.DATABASE_URL, models=[User])
kafka_config = KafkaConfig(
    bootstrap_servers=config.KAFKA_BOOTSTRAP_SERVER, client_id="user-service"
)
kafka_client = KafkaClient(kafka_config)
