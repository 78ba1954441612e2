"""
Tests for inventory_engines.costing - FIFO planning and weighted-average cost.

Tests cover:
- Oldest-first consumption across layers
- Partial take from the last layer touched
- Shortfall reporting when layers run out
- Weighted-average cost with and without shortfall
- Grouping takes by lot
- Input validation
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from inventory_engines.costing import (
    FifoPlan,
    LayerSnapshot,
    LayerTake,
    group_takes_by_lot,
    plan_fifo,
    weighted_average_cost,
)


def _layers(*pairs):
    return [
        LayerSnapshot(layer_id=i + 1, remaining=Decimal(qty), unit_cost=Decimal(cost))
        for i, (qty, cost) in enumerate(pairs)
    ]


class TestPlanFifo:
    """Layers are drawn strictly in the order given."""

    def test_two_layer_draw(self):
        """10 @ 2.00 then 5 @ 3.00, issue 12: all of the first, 2 of the second."""
        plan = plan_fifo(_layers(("10", "2.00"), ("5", "3.00")), Decimal("12"))

        assert [(t.layer_id, t.quantity) for t in plan.takes] == [
            (1, Decimal("10")),
            (2, Decimal("2")),
        ]
        assert plan.shortfall == Decimal("0")
        assert plan.covered == Decimal("12")
        assert plan.layered_cost == Decimal("26.00")
        assert not plan.is_short

    def test_later_layers_untouched(self):
        plan = plan_fifo(_layers(("10", "2"), ("5", "3"), ("7", "4")), Decimal("4"))

        assert len(plan.takes) == 1
        assert plan.takes[0].layer_id == 1
        assert plan.takes[0].quantity == Decimal("4")

    def test_exact_exhaustion(self):
        plan = plan_fifo(_layers(("10", "2"), ("5", "3")), Decimal("15"))

        assert plan.covered == Decimal("15")
        assert plan.shortfall == 0

    def test_shortfall_when_layers_run_out(self):
        plan = plan_fifo(_layers(("3", "1.50")), Decimal("5"))

        assert plan.is_short
        assert plan.shortfall == Decimal("2")
        assert plan.covered == Decimal("3")
        assert plan.layered_cost == Decimal("4.50")

    def test_no_layers_is_all_shortfall(self):
        plan = plan_fifo([], Decimal("4"))

        assert plan.takes == ()
        assert plan.shortfall == Decimal("4")

    def test_takes_carry_lot(self):
        lot_id = uuid4()
        layers = [LayerSnapshot(1, Decimal("5"), Decimal("1"), lot_id=lot_id)]

        plan = plan_fifo(layers, Decimal("2"))

        assert plan.takes[0].lot_id == lot_id

    @pytest.mark.parametrize("quantity", ["0", "-1"])
    def test_non_positive_quantity_rejected(self, quantity):
        with pytest.raises(ValueError):
            plan_fifo(_layers(("1", "1")), Decimal(quantity))


class TestLayerSnapshot:
    """Snapshots reject layers the planner must never see."""

    def test_empty_layer_rejected(self):
        with pytest.raises(ValueError, match="no remaining quantity"):
            LayerSnapshot(layer_id=1, remaining=Decimal("0"), unit_cost=Decimal("1"))

    def test_negative_cost_rejected(self):
        with pytest.raises(ValueError, match="negative unit cost"):
            LayerSnapshot(layer_id=1, remaining=Decimal("1"), unit_cost=Decimal("-0.01"))

    def test_zero_cost_allowed(self):
        layer = LayerSnapshot(layer_id=1, remaining=Decimal("1"), unit_cost=Decimal("0"))
        assert layer.unit_cost == 0


class TestWeightedAverageCost:
    """total cost / total quantity, exact."""

    def test_average_over_two_layers(self):
        plan = plan_fifo(_layers(("10", "2.00"), ("5", "3.00")), Decimal("12"))

        cost = weighted_average_cost(plan.takes)

        assert cost == Decimal("26.00") / Decimal("12")
        assert cost.quantize(Decimal("0.000001")) == Decimal("2.166667")

    def test_single_layer_is_its_cost(self):
        plan = plan_fifo(_layers(("10", "2.50")), Decimal("3"))
        assert weighted_average_cost(plan.takes) == Decimal("2.50")

    def test_shortfall_costed_at_given_rate(self):
        plan = plan_fifo(_layers(("2", "1.00")), Decimal("4"))

        cost = weighted_average_cost(
            plan.takes, plan.shortfall, shortfall_unit_cost=Decimal("2.00")
        )

        # (2 * 1.00 + 2 * 2.00) / 4
        assert cost == Decimal("1.5")

    def test_empty_draw_is_zero(self):
        assert weighted_average_cost(()) == Decimal("0")


class TestGroupTakesByLot:

    def test_groups_in_first_seen_order(self):
        lot_a, lot_b = uuid4(), uuid4()
        takes = [
            LayerTake(1, Decimal("1"), Decimal("1"), lot_a),
            LayerTake(2, Decimal("2"), Decimal("1"), lot_b),
            LayerTake(3, Decimal("3"), Decimal("1"), lot_a),
        ]

        grouped = group_takes_by_lot(takes)

        assert list(grouped) == [lot_a, lot_b]
        assert [t.layer_id for t in grouped[lot_a]] == [1, 3]
        assert [t.layer_id for t in grouped[lot_b]] == [2]

    def test_unlotted_takes_group_under_none(self):
        takes = [LayerTake(1, Decimal("1"), Decimal("1"))]
        assert list(group_takes_by_lot(takes)) == [None]


class TestFifoPlanProperties:

    def test_amount_is_quantity_times_cost(self):
        take = LayerTake(1, Decimal("3"), Decimal("1.25"))
        assert take.amount == Decimal("3.75")

    def test_covered_plus_shortfall_is_requested(self):
        plan = FifoPlan(
            requested=Decimal("5"),
            takes=(LayerTake(1, Decimal("3"), Decimal("1")),),
            shortfall=Decimal("2"),
        )
        assert plan.covered + plan.shortfall == plan.requested
