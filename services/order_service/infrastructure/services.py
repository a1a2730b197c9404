"""
Centralized service instances for the order-service.
Ensures single, shared instances of the database, Kafka client and profile services.
"""

from services.order_service.application.profile_store import ProfileStore
from services.order_service.application.seller_profile_service import (
    SellerProfileService,
    new_seller_profile,
)
from services.order_service.application.user_profile_service import (
    UserProfileService,
    new_user_profile,
)
from services.order_service.config.config import config
from services.order_service.domain.models import SellerProfile, UserProfile
from shared.libs.database.session import Database
from shared.libs.events.idempotency import ProcessedEvent, ProcessedEventLedger
from shared.libs.events.kafka_client import KafkaClient
from shared.libs.events.kafka_config import KafkaConfig

database = Database(
    config.DATABASE_URL, models=[UserProfile, SellerProfile, ProcessedEvent]
)
kafka_config = KafkaConfig(
    bootstrap_servers=config.KAFKA_BOOTSTRAP_SERVER, client_id="order-service"
)
kafka_client = KafkaClient(kafka_config)


def build_user_profile_service(db: Database) -> UserProfileService:
    store = ProfileStore(
        db.session,
        UserProfile,
        "user_id",
        new_user_profile,
        "user",
        optimistic_locking=config.PROFILE_OPTIMISTIC_LOCKING,
        max_attempts=config.PROFILE_WRITE_MAX_ATTEMPTS,
    )
    return UserProfileService(store, top_limit=config.TOP_PRODUCTS_LIMIT)


def build_seller_profile_service(db: Database) -> SellerProfileService:
    store = ProfileStore(
        db.session,
        SellerProfile,
        "seller_id",
        new_seller_profile,
        "seller",
        optimistic_locking=config.PROFILE_OPTIMISTIC_LOCKING,
        max_attempts=config.PROFILE_WRITE_MAX_ATTEMPTS,
    )
    return SellerProfileService(store, top_limit=config.TOP_PRODUCTS_LIMIT)


user_profile_service = build_user_profile_service(database)
seller_profile_service = build_seller_profile_service(database)
ledger = ProcessedEventLedger(database.session) if config.EVENT_DEDUP_ENABLED else None
