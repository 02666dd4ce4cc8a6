"""Unit tests for variant and toolkit status derivation."""

from toolkit_backend.models.toolkit import derive_overall_status
from toolkit_backend.models.variant import StockStatus, derive_variant_status


class TestVariantStatus:

    def test_zero_stock_is_out(self):
        assert derive_variant_status(0, 5) == StockStatus.OUT

    def test_below_minimum_is_low(self):
        assert derive_variant_status(4, 5) == StockStatus.LOW

    def test_at_minimum_is_available(self):
        assert derive_variant_status(5, 5) == StockStatus.AVAILABLE

    def test_single_item_with_minimum_one_is_available(self):
        assert derive_variant_status(1, 1) == StockStatus.AVAILABLE


class TestOverallStatus:

    def test_empty_toolkit_is_out(self):
        assert derive_overall_status(0, []) == StockStatus.OUT

    def test_all_variants_out_is_out(self):
        assert derive_overall_status(0, [StockStatus.OUT, StockStatus.OUT]) == StockStatus.OUT

    def test_any_low_variant_makes_toolkit_low(self):
        statuses = [StockStatus.AVAILABLE, StockStatus.LOW]
        assert derive_overall_status(12, statuses) == StockStatus.LOW

    def test_out_variant_does_not_lower_an_otherwise_available_toolkit(self):
        statuses = [StockStatus.AVAILABLE, StockStatus.OUT]
        assert derive_overall_status(10, statuses) == StockStatus.AVAILABLE

    def test_all_available(self):
        assert derive_overall_status(10, [StockStatus.AVAILABLE]) == StockStatus.AVAILABLE
