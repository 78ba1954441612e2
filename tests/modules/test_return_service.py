"""
Tests for ReturnService - customer returns in, supplier returns out.
"""

from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from inventory_kernel.exceptions import (
    AlreadyPostedError,
    InsufficientStockError,
    LotNotFoundError,
    NotPostedError,
    ValidationError,
)
from inventory_kernel.logging_config import LogContext
from inventory_kernel.models.stock_ledger import StockLedgerEntry
from inventory_modules import DocumentStatus
from inventory_modules.orders import OrderLineInput
from inventory_modules.returns import (
    REF_TYPE,
    ReturnLineInput,
    ReturnService,
    ReturnType,
)


class TestCustomerReturn:

    def test_received_at_stated_cost(self, returns, selector, product_id, main_store):
        order = returns.create(
            main_store,
            ReturnType.CUSTOMER,
            [ReturnLineInput(product_id, Decimal("3"), unit_cost=Decimal("2.50"), reason="Damaged")],
            partner_ref="C-9",
        )

        outcome = returns.post(order.id)

        assert outcome.document_type == "RETURN_ORDER"
        assert outcome.total_value == Decimal("7.5")
        assert outcome.movements[0].movement_type.value == "rcv"
        assert returns.get(order.id).lines[0].cost_amount == Decimal("7.5")
        assert selector.on_hand(product_id, main_store) == Decimal("3")
        assert selector.inventory_value(product_id, main_store) == Decimal("7.5")

    def test_falls_back_to_current_cost(self, returns, stock_in, selector, product_id, main_store):
        stock_in(product_id, main_store, "2", "4.00")
        order = returns.create(
            main_store, ReturnType.CUSTOMER, [ReturnLineInput(product_id, Decimal("1"))],
        )

        outcome = returns.post(order.id)

        assert outcome.movements[0].unit_cost == Decimal("4.00")
        assert selector.on_hand(product_id, main_store) == Decimal("3")

    def test_no_cost_and_no_history(self, returns, product_id, main_store):
        order = returns.create(
            main_store, ReturnType.CUSTOMER, [ReturnLineInput(product_id, Decimal("1"))],
        )

        with pytest.raises(ValidationError):
            returns.post(order.id)

    def test_ledger_rows_reference_return(
        self, session, returns, product_id, main_store,
    ):
        order = returns.create(
            main_store,
            ReturnType.CUSTOMER,
            [ReturnLineInput(product_id, Decimal("1"), unit_cost=Decimal("1.00"))],
        )
        returns.post(order.id)

        rows = list(session.scalars(
            select(StockLedgerEntry).where(StockLedgerEntry.ref_type == REF_TYPE)
        ))
        assert [row.ref_id for row in rows] == [str(order.id)]


class TestSupplierReturn:

    def test_issued_fifo(self, returns, stock_in, selector, product_id, main_store):
        stock_in(product_id, main_store, "2", "1.00")
        stock_in(product_id, main_store, "5", "3.00")
        order = returns.create(
            main_store,
            ReturnType.SUPPLIER,
            [ReturnLineInput(product_id, Decimal("4"), unit_cost=Decimal("9.99"))],
            partner_ref="S-1",
        )

        outcome = returns.post(order.id)

        assert outcome.movements[0].movement_type.value == "iss"
        assert outcome.total_value == Decimal("-8")
        assert returns.get(order.id).lines[0].cost_amount == Decimal("8")
        assert selector.on_hand(product_id, main_store) == Decimal("3")
        assert selector.inventory_value(product_id, main_store) == Decimal("9")

    def test_insufficient_stock(self, returns, stock_in, selector, product_id, main_store):
        stock_in(product_id, main_store, "1", "1.00")
        order = returns.create(
            main_store, ReturnType.SUPPLIER, [ReturnLineInput(product_id, Decimal("2"))],
        )

        with pytest.raises(InsufficientStockError):
            returns.post(order.id)

        assert selector.on_hand(product_id, main_store) == Decimal("1")


class TestCreate:

    def test_empty_return(self, returns, main_store):
        with pytest.raises(ValidationError):
            returns.create(main_store, ReturnType.CUSTOMER, [])

    def test_unknown_return_type(self, returns, product_id, main_store):
        with pytest.raises(ValueError):
            returns.create(main_store, "exchange", [ReturnLineInput(product_id, Decimal("1"))])

    def test_foreign_lot_rejected(self, returns, product_id, main_store):
        with pytest.raises(LotNotFoundError):
            returns.create(
                main_store,
                ReturnType.SUPPLIER,
                [ReturnLineInput(product_id, Decimal("1"), lot_id=uuid4())],
            )

    def test_line_validation(self, product_id):
        with pytest.raises(ValueError):
            ReturnLineInput(product_id, Decimal("0"))
        with pytest.raises(ValueError):
            ReturnLineInput(product_id, Decimal("1"), unit_cost=Decimal("-1"))

    def test_double_post_rejected(self, returns, product_id, main_store):
        order = returns.create(
            main_store,
            ReturnType.CUSTOMER,
            [ReturnLineInput(product_id, Decimal("1"), unit_cost=Decimal("1.00"))],
        )
        returns.post(order.id)

        with pytest.raises(AlreadyPostedError):
            returns.post(order.id)


class TestVoid:

    def test_void_customer_return_removes_stock(
        self, returns, stock_in, selector, product_id, main_store,
    ):
        stock_in(product_id, main_store, "5", "1.00")
        order = returns.create(
            main_store,
            ReturnType.CUSTOMER,
            [ReturnLineInput(product_id, Decimal("2"), unit_cost=Decimal("3.00"))],
        )
        returns.post(order.id)

        outcome = returns.void(order.id, reason="Entered twice")

        assert outcome.status == DocumentStatus.VOIDED
        assert outcome.total_value == Decimal("-6")
        assert selector.on_hand(product_id, main_store) == Decimal("5")
        assert selector.inventory_value(product_id, main_store) == Decimal("5")
        assert selector.reconcile(product_id, main_store).is_balanced

    def test_void_supplier_return_reinstates_stock(
        self, returns, stock_in, selector, product_id, main_store,
    ):
        stock_in(product_id, main_store, "5", "2.00")
        order = returns.create(
            main_store, ReturnType.SUPPLIER, [ReturnLineInput(product_id, Decimal("3"))],
        )
        returns.post(order.id)

        outcome = returns.void(order.id)

        assert outcome.total_value == Decimal("6")
        assert selector.on_hand(product_id, main_store) == Decimal("5")
        assert selector.inventory_value(product_id, main_store) == Decimal("10")

    def test_void_of_sold_customer_return_rejected(
        self, returns, orders, selector, product_id, main_store,
    ):
        order = returns.create(
            main_store,
            ReturnType.CUSTOMER,
            [ReturnLineInput(product_id, Decimal("2"), unit_cost=Decimal("1.00"))],
        )
        returns.post(order.id)
        sale = orders.create(main_store, [OrderLineInput(product_id, Decimal("2"))])
        orders.post(sale.id)

        with pytest.raises(InsufficientStockError):
            returns.void(order.id)

        assert selector.on_hand(product_id, main_store) == Decimal("0")

    def test_void_of_draft_rejected(self, returns, product_id, main_store):
        order = returns.create(
            main_store, ReturnType.CUSTOMER, [ReturnLineInput(product_id, Decimal("1"))],
        )

        with pytest.raises(NotPostedError):
            returns.void(order.id)


class TestLogScope:

    def test_post_logs_carry_caller_and_reference(
        self, session, context, clock, settings, captured_logs, product_id, main_store,
    ):
        traced = ReturnService(
            session, replace(context, correlation_id="req-42"), clock, settings,
        )
        order = traced.create(
            main_store,
            ReturnType.CUSTOMER,
            [ReturnLineInput(product_id, Decimal("1"), unit_cost=Decimal("1.00"))],
        )

        traced.post(order.id)

        record = next(
            r for r in captured_logs() if r["message"] == "document_posting_completed"
        )
        assert record["tenant_id"] == str(context.tenant_id)
        assert record["actor_id"] == str(context.actor_id)
        assert record["correlation_id"] == "req-42"
        assert record["ref_type"] == "RETURN_ORDER"
        assert record["ref_id"] == str(order.id)
        assert LogContext.get_all() == {}
