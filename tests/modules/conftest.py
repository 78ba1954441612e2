"""
Shared fixtures for document module tests.

Every service gets the suite's session, tenant context, deterministic clock
and explicit KernelSettings, so no test depends on the configuration file.

DESIGN RULE: Every fixture is opt-in.  No autouse.
"""

from decimal import Decimal
from uuid import UUID

import pytest

from inventory_modules.adjustments import AdjustmentService
from inventory_modules.goods_receipts import GoodsReceiptLineInput, GoodsReceiptService
from inventory_modules.orders import OrderService
from inventory_modules.production import ProductionService
from inventory_modules.returns import ReturnService
from inventory_modules.stock_counts import StockCountService
from inventory_modules.transfers import TransferService

# ---------------------------------------------------------------------------
# Deterministic locations
# ---------------------------------------------------------------------------

MAIN_STORE_ID = UUID("00000000-0000-4000-b000-000000000001")
KITCHEN_ID = UUID("00000000-0000-4000-b000-000000000002")


@pytest.fixture
def main_store() -> UUID:
    return MAIN_STORE_ID


@pytest.fixture
def kitchen() -> UUID:
    return KITCHEN_ID


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture
def receipts(session, context, clock, settings) -> GoodsReceiptService:
    return GoodsReceiptService(session, context, clock, settings)


@pytest.fixture
def orders(session, context, clock, settings) -> OrderService:
    return OrderService(session, context, clock, settings)


@pytest.fixture
def transfers(session, context, clock, settings) -> TransferService:
    return TransferService(session, context, clock, settings)


@pytest.fixture
def counts(session, context, clock, settings) -> StockCountService:
    return StockCountService(session, context, clock, settings)


@pytest.fixture
def adjustments(session, context, clock, settings) -> AdjustmentService:
    return AdjustmentService(session, context, clock, settings)


@pytest.fixture
def production(session, context, clock, settings) -> ProductionService:
    return ProductionService(session, context, clock, settings)


@pytest.fixture
def returns(session, context, clock, settings) -> ReturnService:
    return ReturnService(session, context, clock, settings)


@pytest.fixture
def stock_in(receipts, clock):
    """
    Post a goods receipt of one line and return its outcome.

    Usage::

        stock_in(product_id, main_store, "10", "2.00", lot_no="L1")
    """

    def _stock_in(product_id, location_id, quantity, unit_cost, **line_kwargs):
        clock.tick()
        receipt = receipts.create(
            location_id,
            [
                GoodsReceiptLineInput(
                    product_id=product_id,
                    quantity=Decimal(quantity),
                    unit_cost=Decimal(unit_cost),
                    **line_kwargs,
                )
            ],
        )
        return receipts.post(receipt.id)

    return _stock_in
