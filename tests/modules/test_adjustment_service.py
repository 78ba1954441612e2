"""
Tests for AdjustmentService - corrections and waste write-offs.
"""

from decimal import Decimal

import pytest

from inventory_kernel.exceptions import InsufficientStockError, ValidationError
from inventory_modules import DocumentStatus
from inventory_modules.adjustments import AdjustmentLineInput, AdjustmentReason


class TestCorrections:

    def test_mixed_signs_post(self, adjustments, stock_in, selector, product_id, main_store):
        stock_in(product_id, main_store, "10", "2.00")
        adjustment = adjustments.create(
            main_store,
            AdjustmentReason.CORRECTION,
            [
                AdjustmentLineInput(product_id, Decimal("-4")),
                AdjustmentLineInput(product_id, Decimal("1"), unit_cost=Decimal("2.50")),
            ],
        )

        outcome = adjustments.post(adjustment.id)

        assert [m.quantity for m in outcome.movements] == [Decimal("-4"), Decimal("1")]
        assert outcome.movements[1].unit_cost == Decimal("2.50")
        assert selector.on_hand(product_id, main_store) == Decimal("7")

    def test_found_stock_without_cost_uses_current(
        self, adjustments, stock_in, product_id, main_store,
    ):
        stock_in(product_id, main_store, "1", "3.00")
        adjustment = adjustments.create(
            main_store, "found", [AdjustmentLineInput(product_id, Decimal("2"))],
        )

        outcome = adjustments.post(adjustment.id)

        assert outcome.movements[0].unit_cost == Decimal("3.00")
        assert adjustments.get(adjustment.id).reason == "found"

    def test_void_restores(self, adjustments, stock_in, selector, product_id, main_store):
        stock_in(product_id, main_store, "10", "2.00")
        adjustment = adjustments.create(
            main_store, AdjustmentReason.CORRECTION, [AdjustmentLineInput(product_id, Decimal("-4"))],
        )
        adjustments.post(adjustment.id)

        outcome = adjustments.void(adjustment.id)

        assert outcome.status == DocumentStatus.VOIDED
        assert selector.on_hand(product_id, main_store) == Decimal("10")

    def test_zero_quantity_line(self, product_id):
        with pytest.raises(ValueError):
            AdjustmentLineInput(product_id, Decimal("0"))


class TestWaste:

    def test_record_waste_posts_immediately(
        self, adjustments, stock_in, selector, product_id, main_store,
    ):
        stock_in(product_id, main_store, "10", "2.00")

        outcome = adjustments.record_waste(
            main_store, AdjustmentReason.SPOILAGE, [AdjustmentLineInput(product_id, Decimal("-3"))],
        )

        assert outcome.status == DocumentStatus.POSTED
        assert outcome.total_value == Decimal("-6")
        assert selector.on_hand(product_id, main_store) == Decimal("7")

    def test_waste_cannot_add_stock(self, adjustments, product_id, main_store):
        with pytest.raises(ValidationError, match="can only remove stock"):
            adjustments.create(
                main_store, AdjustmentReason.DAMAGE, [AdjustmentLineInput(product_id, Decimal("1"))],
            )

    def test_non_waste_reason_rejected(self, adjustments, product_id, main_store):
        with pytest.raises(ValidationError, match="correction is not a waste reason"):
            adjustments.record_waste(
                main_store, "correction", [AdjustmentLineInput(product_id, Decimal("-1"))],
            )

    def test_waste_beyond_stock(self, adjustments, stock_in, product_id, main_store):
        stock_in(product_id, main_store, "1", "2.00")

        with pytest.raises(InsufficientStockError):
            adjustments.record_waste(
                main_store, AdjustmentReason.EXPIRY, [AdjustmentLineInput(product_id, Decimal("-2"))],
            )

    @pytest.mark.parametrize(
        "reason,is_waste",
        [
            (AdjustmentReason.DAMAGE, True),
            (AdjustmentReason.EXPIRY, True),
            (AdjustmentReason.SPOILAGE, True),
            (AdjustmentReason.WASTE, True),
            (AdjustmentReason.CORRECTION, False),
            (AdjustmentReason.FOUND, False),
            (AdjustmentReason.OTHER, False),
        ],
    )
    def test_waste_reasons(self, reason, is_waste):
        assert reason.is_waste is is_waste
