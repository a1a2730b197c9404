from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class UserProfileResponse(BaseModel):
    """
    Buyer analytics as exposed by the read API.
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    total_orders: int
    total_spent: Decimal
    average_order_value: Decimal
    purchased_product_counts: Dict[str, int]
    most_purchased_product_ids: List[str]
    last_order_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class SellerProfileResponse(BaseModel):
    """
    Seller analytics including the best-seller ranking.
    """

    model_config = ConfigDict(from_attributes=True)

    seller_id: str
    store_name: str
    total_products_sold: int
    total_revenue: Decimal
    average_order_value: Decimal
    sold_product_counts: Dict[str, int]
    best_selling_product_ids: List[str]
    last_order_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class UserProfileListResponse(BaseModel):
    profiles: List[UserProfileResponse]


class SellerProfileListResponse(BaseModel):
    profiles: List[SellerProfileResponse]
