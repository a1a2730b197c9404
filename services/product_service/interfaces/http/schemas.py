from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ProductResponse(BaseModel):
    """
    Product as returned by the write and read endpoints.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    quantity: int
    created_at: datetime
    updated_at: datetime
