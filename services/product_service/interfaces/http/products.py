from fastapi import APIRouter, Depends, Header, HTTPException, Path, Request, status
from sqlmodel import Session

from services.product_service.application.product_service import ProductService
from services.product_service.core.exceptions import (
    DatabaseError,
    InvalidInputError,
    ProductAccessDeniedError,
    ProductNotFoundError,
)
from services.product_service.domain.models import ProductCreate, ProductUpdate
from services.product_service.events.producer import ProductEventProducer
from services.product_service.infrastructure.services import database
from services.product_service.interfaces.http.schemas import ProductResponse
from shared.libs.events.exceptions import EventPublishError
from shared.libs.observability.logger_config import log

router = APIRouter(prefix="/products", tags=["products"])


def get_product_event_producer(request: Request) -> ProductEventProducer:
    """Dependency to get the producer created at startup."""
    return request.app.state.event_producer


def get_product_service(
    session: Session = Depends(database.get_session),
    event_producer: ProductEventProducer = Depends(get_product_event_producer),
) -> ProductService:
    return ProductService(session, event_producer)


def get_actor_id(x_user_id: str = Header(..., min_length=1)) -> str:
    """The acting user, forwarded by the gateway."""
    return x_user_id


def _to_http_error(e: Exception, product_id=None) -> HTTPException:
    if isinstance(e, ProductNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, ProductAccessDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, InvalidInputError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, EventPublishError):
        log.error("Product event not published", product_id=product_id)
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Product events unavailable",
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )


_PRODUCT_ERRORS = (
    ProductNotFoundError,
    ProductAccessDeniedError,
    InvalidInputError,
    EventPublishError,
    DatabaseError,
)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_create: ProductCreate,
    actor_id: str = Depends(get_actor_id),
    products: ProductService = Depends(get_product_service),
):
    """
    Create a product owned by the acting user and publish CREATED.
    """
    try:
        log.info("Create product request", name=product_create.name, actor_id=actor_id)
        product = products.create_product(product_create, actor_id)
        return ProductResponse.model_validate(product)

    except _PRODUCT_ERRORS as e:
        raise _to_http_error(e) from e


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str = Path(..., min_length=1, description="The ID of the product"),
    products: ProductService = Depends(get_product_service),
):
    """
    Retrieve a product by ID.
    """
    try:
        return ProductResponse.model_validate(products.get_product_by_id(product_id))

    except ProductNotFoundError as e:
        raise _to_http_error(e, product_id) from e


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_update: ProductUpdate,
    product_id: str = Path(..., min_length=1, description="The ID of the product"),
    actor_id: str = Depends(get_actor_id),
    products: ProductService = Depends(get_product_service),
):
    """
    Update a product the acting user owns and publish UPDATED.
    - 403 if the actor is not the owner
    """
    try:
        log.info("Update product request", product_id=product_id, actor_id=actor_id)
        product = products.update_product(product_id, product_update, actor_id)
        return ProductResponse.model_validate(product)

    except _PRODUCT_ERRORS as e:
        raise _to_http_error(e, product_id) from e


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: str = Path(..., min_length=1, description="The ID of the product"),
    actor_id: str = Depends(get_actor_id),
    products: ProductService = Depends(get_product_service),
):
    """
    Delete a product the acting user owns.
    - DELETED is published before the row goes, so its media is cleaned up
    """
    try:
        log.info("Delete product request", product_id=product_id, actor_id=actor_id)
        products.delete_product(product_id, actor_id)

    except _PRODUCT_ERRORS as e:
        raise _to_http_error(e, product_id) from e
