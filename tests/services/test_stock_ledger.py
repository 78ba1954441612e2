"""
Tests for StockLedgerService - validation of raw ledger rows.
"""

from decimal import Decimal

import pytest

from inventory_kernel.domain.dtos import LedgerEntryInput
from inventory_kernel.domain.movement import MovementType
from inventory_kernel.exceptions import ValidationError


def _entry(product_id, location_id, movement_type, quantity, **kw):
    return LedgerEntryInput(
        product_id=product_id,
        location_id=location_id,
        movement_type=movement_type,
        quantity=Decimal(quantity),
        ref_type="TEST",
        ref_id="ledger-1",
        **kw,
    )


class TestRecord:

    def test_rows_flushed_with_ids(self, poster, context, product_id, location_id):
        rows = poster.ledger.record([
            _entry(product_id, location_id, MovementType.RECEIPT, "2", unit_cost=Decimal("1")),
        ])

        assert rows[0].id is not None
        assert rows[0].tenant_id == context.tenant_id
        assert rows[0].actor_id == context.actor_id

    def test_txn_ts_defaults_to_clock(self, poster, clock, product_id, location_id):
        rows = poster.ledger.record([
            _entry(product_id, location_id, MovementType.RECEIPT, "2", unit_cost=Decimal("1")),
        ])
        assert rows[0].txn_ts == clock.now()

    def test_empty_is_noop(self, poster):
        assert poster.ledger.record([]) == []


class TestValidation:

    def test_reversal_type_needs_link(self, poster, product_id, location_id):
        with pytest.raises(ValidationError) as exc_info:
            poster.ledger.record([
                _entry(product_id, location_id, MovementType.ISSUE_REVERSAL, "1"),
            ])
        assert exc_info.value.field == "reversal_of_id"

    def test_wrong_sign(self, poster, product_id, location_id):
        with pytest.raises(ValidationError) as exc_info:
            poster.ledger.record([_entry(product_id, location_id, MovementType.ISSUE, "1")])
        assert exc_info.value.field == "quantity"

    def test_unknown_movement_type(self, poster, product_id, location_id):
        with pytest.raises(ValidationError) as exc_info:
            poster.ledger.record([_entry(product_id, location_id, "teleport", "1")])
        assert exc_info.value.field == "movement_type"

    def test_negative_cost(self, poster, product_id, location_id):
        with pytest.raises(ValidationError) as exc_info:
            poster.ledger.record([
                _entry(product_id, location_id, MovementType.RECEIPT, "1", unit_cost=Decimal("-1")),
            ])
        assert exc_info.value.field == "unit_cost"

    def test_error_code(self, poster, product_id, location_id):
        with pytest.raises(ValidationError) as exc_info:
            poster.ledger.record([_entry(product_id, location_id, MovementType.ISSUE, "1")])
        assert exc_info.value.code == "VALIDATION_ERROR"
