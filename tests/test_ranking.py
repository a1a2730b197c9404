import pytest

from services.order_service.application.ranking import merge_count, top_products
from services.order_service.domain.models import average_value


class TestTopProducts:
    def test_orders_by_count_descending(self):
        counts = {"P1": 3, "P2": 10, "P3": 7}
        assert top_products(counts) == ["P2", "P3", "P1"]

    def test_ties_break_by_product_id(self):
        counts = {"P9": 4, "P1": 4, "P5": 4, "P2": 9}
        assert top_products(counts) == ["P2", "P1", "P5", "P9"]

    def test_truncates_to_limit(self):
        counts = {f"P{i}": i for i in range(1, 9)}
        assert top_products(counts) == ["P8", "P7", "P6", "P5", "P4"]
        assert top_products(counts, limit=2) == ["P8", "P7"]

    def test_matches_full_sort(self):
        counts = {"a": 2, "b": 5, "c": 5, "d": 1, "e": 2, "f": 7, "g": 5}
        expected = [pid for pid, _ in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))]
        assert top_products(counts, limit=len(counts)) == expected

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit(self, limit):
        assert top_products({"P1": 1}, limit) == []

    def test_empty_map(self):
        assert top_products({}) == []


class TestMergeCount:
    def test_adds_to_existing_count(self):
        original = {"P1": 2}
        merged = merge_count(original, "P1", 3)
        assert merged == {"P1": 5}
        assert original == {"P1": 2}

    @pytest.mark.parametrize("product_id,quantity", [("", 1), ("   ", 1), ("P1", 0), ("P1", -2)])
    def test_ignores_blank_ids_and_non_positive_quantities(self, product_id, quantity):
        assert merge_count({"P1": 1}, product_id, quantity) == {"P1": 1}


class TestAverageValue:
    def test_rounds_half_up_to_cents(self):
        assert str(average_value(10, 3)) == "3.33"
        assert str(average_value(2, 3)) == "0.67"
        assert str(average_value("0.125", 1)) == "0.13"

    def test_zero_count(self):
        assert str(average_value(5, 0)) == "0.00"
