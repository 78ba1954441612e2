"""
Tests for OrderService - FIFO issue against customer orders.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from inventory_kernel.exceptions import (
    AlreadyPostedError,
    InsufficientStockError,
    LotNotFoundError,
    ValidationError,
)
from inventory_modules import DocumentStatus
from inventory_modules.orders import OrderLineInput


class TestPost:

    def test_issue_costed_fifo(self, orders, stock_in, selector, product_id, main_store):
        stock_in(product_id, main_store, "10", "2.00")
        stock_in(product_id, main_store, "5", "3.00")
        order = orders.create(
            main_store, [OrderLineInput(product_id, Decimal("12"))], customer_ref="C-1",
        )

        outcome = orders.post(order.id)

        assert outcome.total_value == Decimal("-26.000004")
        assert orders.get(order.id).lines[0].cost_amount == Decimal("26.000004")
        assert selector.on_hand(product_id, main_store) == Decimal("3")

    def test_line_cost_spans_lots(self, orders, stock_in, product_id, main_store):
        stock_in(product_id, main_store, "2", "1.00", lot_no="A")
        stock_in(product_id, main_store, "2", "3.00", lot_no="B")
        order = orders.create(main_store, [OrderLineInput(product_id, Decimal("3"))])

        outcome = orders.post(order.id)

        assert len(outcome.movements) == 2
        assert orders.get(order.id).lines[0].cost_amount == Decimal("5")

    def test_insufficient_stock(self, orders, stock_in, product_id, main_store):
        stock_in(product_id, main_store, "1", "1.00")
        order = orders.create(main_store, [OrderLineInput(product_id, Decimal("2"))])

        with pytest.raises(InsufficientStockError):
            orders.post(order.id)

    def test_double_post_rejected(self, orders, stock_in, product_id, main_store):
        stock_in(product_id, main_store, "5", "1.00")
        order = orders.create(main_store, [OrderLineInput(product_id, Decimal("1"))])
        orders.post(order.id)

        with pytest.raises(AlreadyPostedError):
            orders.post(order.id)


class TestCreate:

    def test_empty_order(self, orders, main_store):
        with pytest.raises(ValidationError):
            orders.create(main_store, [])

    def test_foreign_lot_rejected(self, orders, product_id, main_store):
        with pytest.raises(LotNotFoundError):
            orders.create(main_store, [OrderLineInput(product_id, Decimal("1"), lot_id=uuid4())])

    def test_quantity_must_be_positive(self, product_id):
        with pytest.raises(ValueError):
            OrderLineInput(product_id, Decimal("-1"))


class TestVoid:

    def test_void_returns_stock_at_issue_cost(
        self, orders, stock_in, selector, product_id, main_store,
    ):
        stock_in(product_id, main_store, "10", "2.00")
        order = orders.create(main_store, [OrderLineInput(product_id, Decimal("4"))])
        orders.post(order.id)

        outcome = orders.void(order.id)

        assert outcome.status == DocumentStatus.VOIDED
        assert outcome.total_value == Decimal("8")
        assert selector.on_hand(product_id, main_store) == Decimal("10")
        assert selector.inventory_value(product_id, main_store) == Decimal("20")
