"""
Tests for GoodsReceiptService - create, post and void of supplier receipts.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from inventory_kernel.exceptions import (
    AlreadyPostedError,
    DocumentNotFoundError,
    InsufficientStockError,
    NotPostedError,
    ValidationError,
)
from inventory_modules import DocumentStatus
from inventory_modules.goods_receipts import (
    REF_TYPE,
    GoodsReceiptLineInput,
    GoodsReceiptService,
)


def _line(product_id, quantity="10", unit_cost="2.00", **kw):
    return GoodsReceiptLineInput(
        product_id=product_id, quantity=Decimal(quantity), unit_cost=Decimal(unit_cost), **kw,
    )


class TestCreate:

    def test_draft_with_numbered_lines(self, receipts, product_id, main_store):
        receipt = receipts.create(
            main_store, [_line(product_id), _line(uuid4())], supplier_ref="PO-77",
        )

        assert receipt.status == DocumentStatus.DRAFT.value
        assert [line.line_no for line in receipt.lines] == [1, 2]
        assert receipt.supplier_ref == "PO-77"

    def test_empty_receipt_rejected(self, receipts, main_store):
        with pytest.raises(ValidationError):
            receipts.create(main_store, [])

    def test_line_validation(self, product_id):
        with pytest.raises(ValueError):
            _line(product_id, quantity="0")
        with pytest.raises(ValueError):
            _line(product_id, unit_cost="-1")


class TestPost:

    def test_post_receives_stock(self, receipts, selector, product_id, main_store):
        receipt = receipts.create(main_store, [_line(product_id, "10", "2.00")])

        outcome = receipts.post(receipt.id)

        assert outcome.status == DocumentStatus.POSTED
        assert outcome.total_value == Decimal("20")
        assert selector.on_hand(product_id, main_store) == Decimal("10")
        assert receipts.get(receipt.id).is_posted

    def test_ledger_reference_is_document(self, receipts, selector, product_id, main_store):
        receipt = receipts.create(main_store, [_line(product_id)])
        receipts.post(receipt.id)

        views = selector.entries_for_reference(REF_TYPE, str(receipt.id))

        assert len(views) == 1
        assert views[0].movement_type == "rcv"

    def test_lot_created_from_line(self, receipts, selector, clock, product_id, main_store):
        receipt = receipts.create(
            main_store,
            [_line(product_id, lot_no="L-1", expiry_date=date(2024, 6, 30))],
        )
        receipts.post(receipt.id)

        posted = receipts.get(receipt.id)
        lot = receipts.lots.get(posted.lines[0].lot_id)
        assert lot.lot_no == "L-1"
        assert lot.expiry_date == date(2024, 6, 30)
        assert lot.received_date == clock.now().date()
        assert selector.lot_on_hand(lot.id) == Decimal("10")

    def test_second_post_rejected(self, receipts, selector, product_id, main_store):
        receipt = receipts.create(main_store, [_line(product_id)])
        receipts.post(receipt.id)

        with pytest.raises(AlreadyPostedError) as exc_info:
            receipts.post(receipt.id)

        assert exc_info.value.status == DocumentStatus.POSTED.value
        assert selector.on_hand(product_id, main_store) == Decimal("10")

    def test_unknown_receipt(self, receipts):
        with pytest.raises(DocumentNotFoundError):
            receipts.post(uuid4())

    def test_other_tenant_cannot_post(
        self, session, other_context, clock, settings, receipts, product_id, main_store,
    ):
        receipt = receipts.create(main_store, [_line(product_id)])
        intruder = GoodsReceiptService(session, other_context, clock, settings)

        with pytest.raises(DocumentNotFoundError):
            intruder.post(receipt.id)


class TestVoid:

    def test_void_reverses_receipt(self, receipts, selector, product_id, main_store):
        receipt = receipts.create(main_store, [_line(product_id)])
        receipts.post(receipt.id)

        outcome = receipts.void(receipt.id, reason="wrong supplier")

        assert outcome.status == DocumentStatus.VOIDED
        assert selector.on_hand(product_id, main_store) == Decimal("0")
        voided = receipts.get(receipt.id)
        assert voided.status == DocumentStatus.VOIDED.value
        assert voided.void_reason == "wrong supplier"
        assert selector.reconcile(product_id, main_store).is_balanced

    def test_void_of_draft_rejected(self, receipts, product_id, main_store):
        receipt = receipts.create(main_store, [_line(product_id)])

        with pytest.raises(NotPostedError):
            receipts.void(receipt.id)

    def test_void_twice_rejected(self, receipts, product_id, main_store):
        receipt = receipts.create(main_store, [_line(product_id)])
        receipts.post(receipt.id)
        receipts.void(receipt.id)

        with pytest.raises(NotPostedError):
            receipts.void(receipt.id)

    def test_void_after_issue_fails(self, receipts, issue, product_id, main_store):
        receipt = receipts.create(main_store, [_line(product_id, "10")])
        receipts.post(receipt.id)
        issue(product_id, main_store, "6")

        with pytest.raises(InsufficientStockError):
            receipts.void(receipt.id)
