"""
Best-seller ranking over productId -> units maps.

Ranking is by units descending; equal counts are ordered by productId
ascending so the result is deterministic.
"""

import heapq
from typing import Dict, List, Mapping

TOP_PRODUCTS_LIMIT = 5


def top_products(counts: Mapping[str, int], limit: int = TOP_PRODUCTS_LIMIT) -> List[str]:
    """
    Return at most `limit` product ids ordered by count, highest first.

    Uses a bounded heap; the result equals sorting the whole map by
    (-count, productId) and truncating.
    """
    if limit <= 0:
        return []
    ranked = heapq.nsmallest(
        limit, ((-count, product_id) for product_id, count in counts.items())
    )
    return [product_id for _, product_id in ranked]


def merge_count(counts: Mapping[str, int], product_id: str, quantity: int) -> Dict[str, int]:
    """
    Return a new map with `quantity` added to `product_id`.
    Blank ids and non-positive quantities leave the map unchanged.
    """
    merged = dict(counts)
    if not product_id or not product_id.strip() or quantity <= 0:
        return merged
    merged[product_id] = merged.get(product_id, 0) + quantity
    return merged
