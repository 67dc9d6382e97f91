"""
Line item and adjustment ledgers (no database).
"""

import pytest

from factures.services.money import Money
from factures.services.line_items import LineItemLedger, product_ref, compute_subtotal
from factures.services.adjustments import (
    Adjustment,
    AdjustmentKind,
    AdjustmentLedger,
    InvalidAdjustment,
    parse_kind,
    reconcile_total,
)


# =============================================================================
# LINE ITEMS
# =============================================================================


class TestLineItemLedger:
    def test_same_product_merges_and_keeps_first_price(self):
        ledger = LineItemLedger()
        ledger.add_or_increment(1, "Ketchup", Money(4000))
        ledger.add_or_increment(1, "Ketchup", Money(4500), 2)

        assert len(ledger) == 1
        line = ledger.get(product_ref(1))
        assert line.quantity == 3
        assert line.unit_price == Money(4000)
        assert line.total == Money(12000)

    def test_custom_lines_never_merge(self):
        ledger = LineItemLedger()
        first = ledger.add_or_increment(None, "Livraison", Money(1000))
        second = ledger.add_or_increment(None, "Livraison", Money(1000))

        assert len(ledger) == 2
        assert first.ref != second.ref
        assert first.is_custom and second.is_custom

    def test_rejects_non_positive_delta(self):
        ledger = LineItemLedger()
        with pytest.raises(ValueError):
            ledger.add_or_increment(1, "Ketchup", Money(4000), 0)

    def test_set_quantity_zero_removes_line(self):
        ledger = LineItemLedger()
        ledger.add_or_increment(1, "Ketchup", Money(4000))
        assert ledger.set_quantity(product_ref(1), 0) is None
        assert not ledger

    def test_line_total_follows_price_changes(self):
        ledger = LineItemLedger()
        ledger.add_or_increment(2, "Mayonnaise", Money(7000), 2)
        ledger.set_unit_price(product_ref(2), Money(6500))
        assert ledger.subtotal() == Money(13000)

    def test_remove_absent_ref_is_noop(self):
        ledger = LineItemLedger()
        ledger.add_or_increment(1, "Ketchup", Money(4000))
        ledger.remove("product-99")
        assert len(ledger) == 1

    def test_set_quantity_rejects_non_integers(self):
        ledger = LineItemLedger()
        ledger.add_or_increment(1, "Ketchup", Money(4000))
        for qty in ("2", 1.5, True, None):
            with pytest.raises(ValueError):
                ledger.set_quantity(product_ref(1), qty)
        assert ledger.get(product_ref(1)).quantity == 1

    def test_custom_refs_are_per_ledger(self):
        first = LineItemLedger().add_or_increment(None, "Livraison", Money(1000))
        second = LineItemLedger().add_or_increment(None, "Livraison", Money(1000))
        assert first.ref == second.ref == "custom-1"

    def test_subtotal_and_item_count(self):
        ledger = LineItemLedger()
        ledger.add_or_increment(1, "Ketchup", Money(4000), 2)
        ledger.add_or_increment(2, "Mayonnaise", Money(7000))
        assert ledger.subtotal() == Money(15000)
        assert ledger.item_count() == 3
        assert compute_subtotal(ledger.items) == Money(15000)


# =============================================================================
# ADJUSTMENTS
# =============================================================================


class TestParseKind:
    @pytest.mark.parametrize("raw", [None, "", "  "])
    def test_missing_means_deduction(self, raw):
        assert parse_kind(raw) is AdjustmentKind.DEDUCTION

    def test_case_insensitive(self):
        assert parse_kind("CREDIT") is AdjustmentKind.CREDIT

    def test_unknown_kind(self):
        with pytest.raises(InvalidAdjustment):
            parse_kind("refund")


class TestAdjustmentBuild:
    def test_blank_label_rejected(self):
        with pytest.raises(InvalidAdjustment) as exc:
            Adjustment.build("   ", 500)
        assert exc.value.details["field"] == "label"

    @pytest.mark.parametrize("amount", [0, "0", -10, "abc", None])
    def test_amount_must_be_positive(self, amount):
        with pytest.raises(InvalidAdjustment):
            Adjustment.build("Avance", amount)

    def test_label_is_stripped_and_amount_rounded(self):
        adj = Adjustment.build("  Avance  ", "999,5", "deduction")
        assert adj.label == "Avance"
        assert adj.amount == Money(1000)
        assert not adj.is_credit


class TestAdjustmentLedger:
    def test_reconcile_adds_credits_and_subtracts_deductions(self):
        ledger = AdjustmentLedger([
            Adjustment.build("Ancienne dette", 3000, "credit"),
            Adjustment.build("Avance", 5000, "deduction"),
        ])
        assert ledger.reconcile(Money(10000)) == Money(8000)

    def test_deductions_beyond_subtotal_floor_at_zero(self):
        ledger = AdjustmentLedger([Adjustment.build("Acompte", 20000)])
        assert ledger.reconcile(Money(12000)) == Money(0)

    def test_duplicate_labels_are_kept(self):
        ledger = AdjustmentLedger([
            Adjustment.build("Avance", 1000),
            Adjustment.build("Avance", 1000),
        ])
        assert len(ledger) == 2
        assert ledger.deduction_total() == Money(2000)

    def test_remove_is_idempotent(self):
        ledger = AdjustmentLedger([Adjustment.build("Avance", 1000, id=7)])
        ledger.remove(7)
        ledger.remove(7)
        assert len(ledger) == 0

    def test_breakdown_orders_credits_before_deductions(self):
        ledger = AdjustmentLedger([
            Adjustment.build("Avance", 2000, "deduction"),
            Adjustment.build("Dette", 1000, "credit"),
        ])
        breakdown = ledger.breakdown(Money(5000))

        kinds = [line.kind for line in breakdown.lines]
        assert kinds == ["subtotal", "credit", "deduction", "total"]
        assert breakdown.total == Money(4000)
        assert breakdown.is_adjusted

        lines = breakdown.to_dict()["lines"]
        assert lines[1]["display"] == "+ 1 000 FCFA"
        assert lines[2]["display"] == "- 2 000 FCFA"

    def test_breakdown_keeps_insertion_order_within_each_group(self):
        ledger = AdjustmentLedger([
            Adjustment.build("D1", 100, "deduction"),
            Adjustment.build("C1", 200, "credit"),
            Adjustment.build("D2", 300, "deduction"),
            Adjustment.build("C2", 400, "credit"),
        ])
        breakdown = ledger.breakdown(Money(2500))

        assert [line.label for line in breakdown.lines] == ["Sous-total", "C1", "C2", "D1", "D2", "Total"]
        assert breakdown.total == Money(2700)

    def test_breakdown_without_adjustments(self):
        breakdown = AdjustmentLedger().breakdown(Money(5000))
        assert [line.label for line in breakdown.lines] == ["Sous-total", "Total"]
        assert not breakdown.is_adjusted

    def test_reconcile_total_helper(self):
        assert reconcile_total(Money(100), []) == Money(100)
