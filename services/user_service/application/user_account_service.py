from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from services.user_service.core.exceptions import DatabaseError, UserNotFoundError
from services.user_service.domain.models import User
from services.user_service.events.producer import UserEventProducer
from shared.libs.observability.logger_config import log


class UserAccountService:
    """
    Account lifecycle for the user-service.
    Deleting an account is the entry point of the deletion cascade.
    """

    def __init__(self, session: Session, event_producer: UserEventProducer):
        self.session = session
        self.event_producer = event_producer

    def get_user(self, user_id: str) -> User:
        user = self.session.get(User, user_id)
        if not user:
            raise UserNotFoundError(f"User with ID {user_id} not found")
        return user

    def delete_account(self, user_id: str) -> None:
        """
        Publish UserDeleted, then delete the user row.

        Raises:
            UserNotFoundError: If the user does not exist.
            EventPublishError: If the event cannot be enqueued; the user is kept.
            DatabaseError: If the delete fails after the event was published.
        """
        user = self.get_user(user_id)
        self.event_producer.publish_user_deleted(user.id, user.role.value)

        try:
            self.session.delete(user)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            log.critical(
                "User deletion failed after UserDeleted was published",
                user_id=user_id,
                error=str(e),
            )
            raise DatabaseError("Failed to delete user", e) from e
        log.info("User deleted", user_id=user_id, role=user.role.value)
