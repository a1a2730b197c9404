from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.exc import SQLAlchemyError

from services.order_service.application.seller_profile_service import (
    SellerProfileService,
)
from services.order_service.application.user_profile_service import (
    UserProfileService,
)
from services.order_service.infrastructure import services
from services.order_service.interfaces.http.schemas import (
    SellerProfileListResponse,
    SellerProfileResponse,
    UserProfileListResponse,
    UserProfileResponse,
)
from shared.libs.observability.logger_config import log

router = APIRouter(prefix="/profiles", tags=["profiles"])


def get_user_profile_service() -> UserProfileService:
    """Dependency to get the shared UserProfileService."""
    return services.user_profile_service


def get_seller_profile_service() -> SellerProfileService:
    """Dependency to get the shared SellerProfileService."""
    return services.seller_profile_service


def _database_unavailable(e: Exception) -> HTTPException:
    log.exception("Profile read failed: database error", error=str(e))
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Profile store unavailable",
    )


@router.get("/users/top", response_model=UserProfileListResponse)
async def list_top_buyers(
    limit: int = Query(10, ge=1, le=100, description="Number of profiles to return"),
    user_profiles: UserProfileService = Depends(get_user_profile_service),
):
    """
    Buyers ordered by total amount spent, highest first.
    """
    try:
        profiles = user_profiles.top_spenders(limit)
    except SQLAlchemyError as e:
        raise _database_unavailable(e) from e
    return UserProfileListResponse(
        profiles=[UserProfileResponse.model_validate(p) for p in profiles]
    )


@router.get("/users/{user_id}", response_model=UserProfileResponse)
async def get_user_profile(
    user_id: str = Path(..., min_length=1, description="The ID of the buyer"),
    user_profiles: UserProfileService = Depends(get_user_profile_service),
):
    """
    Retrieve a buyer profile. A zeroed profile is created on first read.
    """
    try:
        log.info("Get user profile request", user_id=user_id)
        profile = user_profiles.get_profile(user_id)
    except SQLAlchemyError as e:
        raise _database_unavailable(e) from e
    return UserProfileResponse.model_validate(profile)


@router.get("/sellers/top", response_model=SellerProfileListResponse)
async def list_top_sellers(
    limit: int = Query(10, ge=1, le=100, description="Number of profiles to return"),
    seller_profiles: SellerProfileService = Depends(get_seller_profile_service),
):
    """
    Sellers ordered by total revenue, highest first.
    """
    try:
        profiles = seller_profiles.top_sellers(limit)
    except SQLAlchemyError as e:
        raise _database_unavailable(e) from e
    return SellerProfileListResponse(
        profiles=[SellerProfileResponse.model_validate(p) for p in profiles]
    )


@router.get("/sellers/{seller_id}", response_model=SellerProfileResponse)
async def get_seller_profile(
    seller_id: str = Path(..., min_length=1, description="The ID of the seller"),
    seller_profiles: SellerProfileService = Depends(get_seller_profile_service),
):
    """
    Retrieve a seller profile with its best-selling products.
    """
    try:
        log.info("Get seller profile request", seller_id=seller_id)
        profile = seller_profiles.get_profile(seller_id)
    except SQLAlchemyError as e:
        raise _database_unavailable(e) from e
    return SellerProfileResponse.model_validate(profile)
