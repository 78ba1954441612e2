"""
Tests for ProductionService - ingredients consumed FIFO, output received at
their total cost.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from inventory_kernel.domain.movement import MovementType
from inventory_kernel.exceptions import InsufficientStockError, ValidationError
from inventory_modules.production import IngredientInput, ProductionOutput


@pytest.fixture
def flour() -> UUID:
    return uuid4()


@pytest.fixture
def butter() -> UUID:
    return uuid4()


@pytest.fixture
def pastry() -> UUID:
    return uuid4()


class TestPost:

    def test_output_carries_ingredient_cost(
        self, production, stock_in, selector, flour, butter, pastry, main_store,
    ):
        stock_in(flour, main_store, "10", "0.50")
        stock_in(butter, main_store, "4", "2.00")
        order = production.create(
            main_store,
            ProductionOutput(pastry, Decimal("4")),
            [IngredientInput(flour, Decimal("6")), IngredientInput(butter, Decimal("1"))],
        )

        outcome = production.post(order.id)

        # (6 * 0.50 + 1 * 2.00) / 4
        produced = outcome.movements[-1]
        assert produced.movement_type == MovementType.PRODUCTION_IN
        assert produced.unit_cost == Decimal("1.25")
        assert selector.on_hand(pastry, main_store) == Decimal("4")
        assert selector.on_hand(flour, main_store) == Decimal("4")
        posted = production.get(order.id)
        assert posted.output_unit_cost == Decimal("1.25")
        assert [i.cost_amount for i in posted.ingredients] == [Decimal("3"), Decimal("2")]

    def test_value_conserved(self, production, stock_in, selector, flour, pastry, main_store):
        stock_in(flour, main_store, "10", "0.50")
        before = selector.inventory_value(location_id=main_store)
        order = production.create(
            main_store, ProductionOutput(pastry, Decimal("2")), [IngredientInput(flour, Decimal("4"))],
        )

        production.post(order.id)

        assert selector.inventory_value(location_id=main_store) == before

    def test_output_lot(self, production, stock_in, selector, clock, flour, pastry, main_store):
        stock_in(flour, main_store, "10", "0.50")
        order = production.create(
            main_store,
            ProductionOutput(pastry, Decimal("1"), lot_no="P-1", expiry_date=date(2024, 1, 5)),
            [IngredientInput(flour, Decimal("2"))],
        )

        production.post(order.id)

        posted = production.get(order.id)
        lot = production.lots.get(posted.output_lot_id)
        assert lot.lot_no == "P-1"
        assert lot.manufacture_date == clock.now().date()
        assert selector.lot_on_hand(lot.id) == Decimal("1")

    def test_short_ingredient_rejects_whole_order(
        self, production, stock_in, flour, butter, pastry, main_store,
    ):
        stock_in(flour, main_store, "10", "0.50")
        order = production.create(
            main_store,
            ProductionOutput(pastry, Decimal("1")),
            [IngredientInput(flour, Decimal("1")), IngredientInput(butter, Decimal("1"))],
        )

        with pytest.raises(InsufficientStockError):
            production.post(order.id)


class TestCreate:

    def test_ingredients_required(self, production, pastry, main_store):
        with pytest.raises(ValidationError):
            production.create(main_store, ProductionOutput(pastry, Decimal("1")), [])

    def test_output_quantity_positive(self, pastry):
        with pytest.raises(ValueError):
            ProductionOutput(pastry, Decimal("0"))


class TestVoid:

    def test_void_unwinds_both_sides(
        self, production, stock_in, selector, flour, pastry, main_store,
    ):
        stock_in(flour, main_store, "10", "0.50")
        order = production.create(
            main_store, ProductionOutput(pastry, Decimal("2")), [IngredientInput(flour, Decimal("4"))],
        )
        production.post(order.id)

        production.void(order.id)

        assert selector.on_hand(flour, main_store) == Decimal("10")
        assert selector.on_hand(pastry, main_store) == Decimal("0")
