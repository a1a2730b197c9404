from typing import Optional

from shared.libs.events.publisher import EventPublisher, PublishOutcome
from shared.libs.events.schemas import UserDeleted
from shared.libs.events.topics import USER_EVENTS, USER_SERVICE


class UserEventProducer:
    """Publishes user lifecycle events keyed by user id."""

    def __init__(self, producer):
        self.publisher = EventPublisher(producer, USER_SERVICE)

    def publish_user_deleted(
        self, user_id: str, user_role: Optional[str] = None
    ) -> PublishOutcome:
        event = UserDeleted(user_id=user_id, user_role=user_role)
        return self.publisher.publish(USER_EVENTS, user_id, event)
