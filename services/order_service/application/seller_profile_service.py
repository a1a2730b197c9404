from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from services.order_service.application.profile_store import ProfileStore
from services.order_service.application.ranking import (
    TOP_PRODUCTS_LIMIT,
    merge_count,
    top_products,
)
from services.order_service.domain.models import SellerProfile, average_value, utcnow
from shared.libs.observability.logger_config import log


def new_seller_profile(seller_id: str) -> SellerProfile:
    return SellerProfile(seller_id=seller_id, store_name=f"Store of {seller_id}")


class SellerProfileService:
    """
    Seller-side analytics: units sold, revenue and the best-seller ranking.
    The ranking is recomputed from the full sold-count map on every sale.
    """

    def __init__(self, store: ProfileStore, top_limit: int = TOP_PRODUCTS_LIMIT):
        self.store = store
        self.top_limit = top_limit

    def record_sale(
        self,
        seller_id: str,
        quantity: int,
        revenue: Decimal,
        product_id: str,
        sold_at: Optional[datetime] = None,
    ) -> SellerProfile:
        sold_at = sold_at or utcnow()

        def mutate(profile: SellerProfile) -> None:
            profile.total_products_sold += quantity
            profile.total_revenue = Decimal(profile.total_revenue) + Decimal(revenue)
            counts = merge_count(profile.sold_product_counts or {}, product_id, quantity)
            profile.sold_product_counts = counts
            profile.best_selling_product_ids = top_products(counts, self.top_limit)
            profile.average_order_value = average_value(
                profile.total_revenue, profile.total_products_sold
            )
            profile.last_order_date = sold_at

        profile = self.store.apply(seller_id, mutate)
        log.info(
            "Seller profile updated",
            seller_id=seller_id,
            product_id=product_id,
            quantity=quantity,
            total_revenue=str(profile.total_revenue),
        )
        return profile

    def get_profile(self, seller_id: str) -> SellerProfile:
        return self.store.get_or_create(seller_id)

    def top_sellers(self, limit: int = 10) -> List[SellerProfile]:
        return self.store.top(SellerProfile.total_revenue, limit)
