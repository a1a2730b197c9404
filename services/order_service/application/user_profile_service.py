from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from services.order_service.application.profile_store import ProfileStore
from services.order_service.application.ranking import (
    TOP_PRODUCTS_LIMIT,
    merge_count,
    top_products,
)
from services.order_service.domain.models import UserProfile, average_value, utcnow
from shared.libs.events.schemas import ItemSnapshot
from shared.libs.observability.logger_config import log


def new_user_profile(user_id: str) -> UserProfile:
    return UserProfile(user_id=user_id)


class UserProfileService:
    """
    Buyer-side analytics: orders placed, amount spent, most purchased products.
    Profiles are created on first touch and never deleted here.
    """

    def __init__(self, store: ProfileStore, top_limit: int = TOP_PRODUCTS_LIMIT):
        self.store = store
        self.top_limit = top_limit

    def record_new_order(
        self,
        user_id: str,
        total_price: Decimal,
        items: Iterable[ItemSnapshot],
        ordered_at: Optional[datetime] = None,
    ) -> UserProfile:
        """
        Count one more order for `user_id` and fold its items into the
        purchase counts. Commits on its own.
        """
        items = list(items)
        ordered_at = ordered_at or utcnow()

        def mutate(profile: UserProfile) -> None:
            profile.total_orders += 1
            profile.total_spent = Decimal(profile.total_spent) + Decimal(total_price)
            profile.average_order_value = average_value(
                profile.total_spent, profile.total_orders
            )
            counts = dict(profile.purchased_product_counts or {})
            for item in items:
                counts = merge_count(counts, item.product_id, item.quantity)
            profile.purchased_product_counts = counts
            profile.most_purchased_product_ids = top_products(counts, self.top_limit)
            profile.last_order_date = ordered_at

        profile = self.store.apply(user_id, mutate)
        log.info(
            "User profile updated",
            user_id=user_id,
            total_orders=profile.total_orders,
            total_spent=str(profile.total_spent),
        )
        return profile

    def get_profile(self, user_id: str) -> UserProfile:
        return self.store.get_or_create(user_id)

    def top_spenders(self, limit: int = 10) -> List[UserProfile]:
        return self.store.top(UserProfile.total_spent, limit)
