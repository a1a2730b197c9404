from services.product_service.events.handlers import UserDeletedHandler
from shared.libs.events.registry import ConsumerRegistry
from shared.libs.events.topics import PRODUCT_SERVICE_GROUP, USER_EVENTS


def build_registry(user_deleted: UserDeletedHandler) -> ConsumerRegistry:
    registry = ConsumerRegistry()
    registry.register(
        USER_EVENTS, PRODUCT_SERVICE_GROUP, user_deleted, "user-deleted-handler"
    )
    return registry
