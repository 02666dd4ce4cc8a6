"""Unit tests for Toolkit aggregate operations."""

import pytest

from toolkit_backend.core.exceptions import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from toolkit_backend.models.stock_history import StockAction
from toolkit_backend.models.toolkit import InsertOutcome, Toolkit
from toolkit_backend.models.variant import StockStatus


# ── Creation ─────────────────────────────────────────────────────────────────


class TestCreate:

    def test_new_toolkit_has_one_stocked_variant(self, helmet):
        assert len(helmet.variants) == 1
        variant = helmet.variants[0]
        assert (variant.size, variant.color) == ("M", "Yellow")
        assert variant.stock_count == 10
        assert variant.min_stock_level == 5
        assert variant.inuse is False
        assert helmet.total_stock == 10
        assert helmet.overall_status == StockStatus.AVAILABLE

    def test_missing_size_and_color_become_not_applicable(self):
        toolkit = Toolkit.create("tk-1", "Ear Plugs", "Hearing", None, "  ", 3)
        assert (toolkit.variants[0].size, toolkit.variants[0].color) == ("N/A", "N/A")

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError, match="Equipment name is required"):
            Toolkit.create("tk-1", "   ", "Hearing", None, None, 3)

    def test_blank_type_rejected(self):
        with pytest.raises(ValidationError, match="Equipment type is required"):
            Toolkit.create("tk-1", "Ear Plugs", "", None, None, 3)

    def test_zero_opening_stock_is_out(self):
        toolkit = Toolkit.create("tk-1", "Visor", "Face", "L", "Clear", 0)
        assert toolkit.variants[0].status == StockStatus.OUT
        assert toolkit.overall_status == StockStatus.OUT


# ── Insert or merge ──────────────────────────────────────────────────────────


class TestInsertOrMerge:

    def test_existing_key_is_merged_case_insensitively(self, helmet):
        outcome, variant = helmet.insert_or_merge("m", "YELLOW", 3)
        helmet.recompute()
        assert outcome == InsertOutcome.VARIANT_MERGED
        assert variant is helmet.variants[0]
        assert variant.stock_count == 13
        assert helmet.total_stock == 13

    def test_merge_appends_an_updated_entry(self, helmet):
        helmet.insert_or_merge("M", "Yellow", 3)
        entry = helmet.variants[0].stock_history[-1]
        assert entry.action == StockAction.UPDATED
        assert (entry.previous_stock, entry.new_stock, entry.change_amount) == (10, 13, 3)
        assert entry.reason == "Stock updated: Added 3 items"

    def test_merge_adopts_supplied_minimum(self, helmet):
        helmet.insert_or_merge("M", "Yellow", 0, min_stock_level=20)
        helmet.recompute()
        assert helmet.variants[0].min_stock_level == 20
        assert helmet.variants[0].status == StockStatus.LOW

    def test_new_key_adds_variant(self, helmet):
        outcome, variant = helmet.insert_or_merge("L", "White", 4)
        helmet.recompute()
        assert outcome == InsertOutcome.VARIANT_ADDED
        assert [v.id for v in helmet.variants][-1] == variant.id
        assert variant.stock_history[0].reason == "New variant added: L - White"
        assert helmet.total_stock == 14
        assert helmet.overall_status == StockStatus.LOW


# ── Reduce ───────────────────────────────────────────────────────────────────


class TestReduceStock:

    def test_reduce_below_minimum_turns_low(self, helmet):
        variant_id = helmet.variants[0].id
        variant, entry = helmet.reduce_stock(variant_id, 8, person="Ravi")
        helmet.recompute()
        assert variant.stock_count == 2
        assert variant.status == StockStatus.LOW
        assert helmet.overall_status == StockStatus.LOW
        assert entry.action == StockAction.REDUCED
        assert entry.change_amount == -8
        assert entry.person == "Ravi"
        assert entry.reason == "Stock reduced: 8 items used"

    def test_reduce_everything_turns_out(self, helmet):
        helmet.reduce_stock(helmet.variants[0].id, 10)
        helmet.recompute()
        assert helmet.total_stock == 0
        assert helmet.overall_status == StockStatus.OUT

    def test_insufficient_stock_changes_nothing(self, helmet):
        variant = helmet.variants[0]
        with pytest.raises(InsufficientStockError, match="Available: 10, Requested: 11"):
            helmet.reduce_stock(variant.id, 11)
        assert variant.stock_count == 10
        assert len(variant.stock_history) == 1

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity_rejected(self, helmet, quantity):
        with pytest.raises(ValidationError, match="Valid quantity is required"):
            helmet.reduce_stock(helmet.variants[0].id, quantity)

    def test_unknown_variant_rejected(self, helmet):
        with pytest.raises(NotFoundError, match="Variant with ID nope not found"):
            helmet.reduce_stock("nope", 1)


# ── Update variant ───────────────────────────────────────────────────────────


class TestUpdateVariant:

    def test_stock_change_is_ledgered(self, helmet):
        variant, entry = helmet.update_variant(helmet.variants[0].id, {"stock_count": 4})
        assert variant.stock_count == 4
        assert entry.action == StockAction.REDUCED
        assert entry.change_amount == -6
        assert entry.reason == "Stock reduced: 6 items"

    def test_stock_increase_is_added(self, helmet):
        _, entry = helmet.update_variant(helmet.variants[0].id, {"stock_count": 15})
        assert entry.action == StockAction.ADDED
        assert entry.change_amount == 5

    def test_unchanged_stock_writes_no_entry(self, helmet):
        variant, entry = helmet.update_variant(
            helmet.variants[0].id, {"stock_count": 10, "inuse": True}
        )
        assert entry is None
        assert variant.inuse is True
        assert len(variant.stock_history) == 1

    def test_unknown_keys_are_ignored(self, helmet):
        variant, entry = helmet.update_variant(
            helmet.variants[0].id, {"status": "out", "id": "hijack"}
        )
        assert entry is None
        assert variant.id != "hijack"
        assert variant.status == StockStatus.AVAILABLE

    def test_rename_onto_existing_key_rejected(self, helmet):
        helmet.insert_or_merge("L", "White", 4)
        with pytest.raises(ValidationError, match="already exists"):
            helmet.update_variant(helmet.variants[0].id, {"size": "l", "color": "white"})

    def test_negative_stock_rejected(self, helmet):
        with pytest.raises(ValidationError, match="cannot be negative"):
            helmet.update_variant(helmet.variants[0].id, {"stock_count": -1})
        assert helmet.variants[0].stock_count == 10

    def test_min_level_change_reflected_after_recompute(self, helmet):
        helmet.update_variant(helmet.variants[0].id, {"min_stock_level": 11})
        helmet.recompute()
        assert helmet.variants[0].status == StockStatus.LOW


# ── Delete / reconcile ───────────────────────────────────────────────────────


class TestDeleteVariant:

    def test_delete_removes_variant(self, helmet):
        helmet.insert_or_merge("L", "White", 4)
        removed = helmet.delete_variant(helmet.variants[0].id)
        helmet.recompute()
        assert removed.size == "M"
        assert len(helmet.variants) == 1
        assert helmet.total_stock == 4

    def test_delete_unknown_variant_rejected(self, helmet):
        with pytest.raises(NotFoundError):
            helmet.delete_variant("nope")


class TestReconcileVariants:

    def test_updates_adds_and_drops(self, helmet):
        helmet.insert_or_merge("L", "White", 4)
        kept = helmet.variants[0]
        helmet.reconcile_variants(
            [
                {"id": kept.id, "stock_count": 7},
                {"size": "S", "color": "Red", "stock_count": 3},
            ]
        )
        helmet.recompute()
        assert [(v.size, v.color) for v in helmet.variants] == [("M", "Yellow"), ("S", "Red")]
        assert kept.stock_count == 7
        assert kept.stock_history[-1].change_amount == -3
        assert helmet.total_stock == 10
        assert helmet.overall_status == StockStatus.LOW

    def test_empty_list_rejected(self, helmet):
        with pytest.raises(ValidationError):
            helmet.reconcile_variants([])

    def test_unknown_id_rejected(self, helmet):
        with pytest.raises(NotFoundError):
            helmet.reconcile_variants([{"id": "nope", "stock_count": 1}])

    def test_repeated_id_rejected(self, helmet):
        variant_id = helmet.variants[0].id
        with pytest.raises(ValidationError, match="must not repeat"):
            helmet.reconcile_variants([{"id": variant_id}, {"id": variant_id}])

    def test_new_variant_colliding_with_kept_one_rejected(self, helmet):
        variant_id = helmet.variants[0].id
        with pytest.raises(ValidationError, match="already exists"):
            helmet.reconcile_variants(
                [{"id": variant_id}, {"size": "M", "color": "Yellow", "stock_count": 1}]
            )


    def test_kept_variants_may_swap_colors(self, helmet):
        helmet.insert_or_merge("M", "Red", 4)
        yellow, red = helmet.variants
        helmet.reconcile_variants(
            [{"id": yellow.id, "color": "Red"}, {"id": red.id, "color": "Yellow"}]
        )
        assert [(v.id, v.color) for v in helmet.variants] == [(yellow.id, "Red"), (red.id, "Yellow")]
        assert [v.stock_count for v in helmet.variants] == [10, 4]

    def test_kept_variants_renamed_onto_same_key_rejected(self, helmet):
        helmet.insert_or_merge("M", "Red", 4)
        yellow, red = helmet.variants
        with pytest.raises(ValidationError, match="already exists"):
            helmet.reconcile_variants(
                [{"id": yellow.id, "color": "Blue"}, {"id": red.id, "color": "blue"}]
            )
        assert [v.color for v in helmet.variants] == ["Yellow", "Red"]


class TestUpdateDetails:

    def test_name_and_type_are_trimmed(self, helmet):
        helmet.update_details(name="  Hard Hat ", type=" Head ")
        assert (helmet.name, helmet.type, helmet.name_key) == ("Hard Hat", "Head", "hard hat")

    def test_blank_name_rejected(self, helmet):
        with pytest.raises(ValidationError):
            helmet.update_details(name=" ")
