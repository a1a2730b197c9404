from fastapi import APIRouter, Depends, HTTPException, Path, Request, status
from sqlmodel import Session

from services.user_service.application.user_account_service import UserAccountService
from services.user_service.core.exceptions import DatabaseError, UserNotFoundError
from services.user_service.events.producer import UserEventProducer
from services.user_service.infrastructure.services import database
from services.user_service.interfaces.http.schemas import UserResponse
from shared.libs.events.exceptions import EventPublishError
from shared.libs.observability.logger_config import log

router = APIRouter(prefix="/users", tags=["users"])


def get_user_event_producer(request: Request) -> UserEventProducer:
    """Dependency to get the producer created at startup."""
    return request.app.state.event_producer


def get_user_account_service(
    session: Session = Depends(database.get_session),
    event_producer: UserEventProducer = Depends(get_user_event_producer),
) -> UserAccountService:
    return UserAccountService(session, event_producer)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str = Path(..., min_length=1, description="The ID of the user"),
    accounts: UserAccountService = Depends(get_user_account_service),
):
    """
    Retrieve a user by ID.
    """
    try:
        log.info("Get user request", user_id=user_id)
        return UserResponse.model_validate(accounts.get_user(user_id))

    except UserNotFoundError as e:
        log.warning("User not found", user_id=user_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str = Path(..., min_length=1, description="The ID of the user"),
    accounts: UserAccountService = Depends(get_user_account_service),
):
    """
    Delete a user account.
    - Publishes UserDeleted first; products and media are removed downstream
    - 503 if the event cannot be published (the account is kept)
    """
    try:
        log.info("Delete user request", user_id=user_id)
        accounts.delete_account(user_id)

    except UserNotFoundError as e:
        log.warning("User deletion failed: not found", user_id=user_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    except EventPublishError as e:
        log.error("User deletion failed: event not published", user_id=user_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="User events unavailable, account kept",
        ) from e

    except DatabaseError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from e
