"""
Production Service (``inventory_modules.production.service``).

Responsibility
--------------
Converts ingredients into a finished product at one location.  Posting
issues every ingredient FIFO (``prod_out``) and then receives the output
(``prod_in``) at total ingredient cost divided by output quantity, so the
value consumed is carried into the output layer.  Void reverses both sides.

Architecture
------------
Layer: **Modules** -- two ``post_batch`` calls in the caller's transaction;
the output cost depends on the ingredient draw, so ingredients go first.

Failure Modes
-------------
- ``ValidationError`` for an order without ingredients.
- ``InsufficientStockError`` for an uncovered ingredient.
- On void, ``InsufficientStockError`` when the output was already used.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from inventory_kernel.db.types import ZERO
from inventory_kernel.domain.dtos import LotInput, MovementInput
from inventory_kernel.domain.movement import MovementType
from inventory_kernel.exceptions import ValidationError
from inventory_kernel.logging_config import get_logger
from inventory_modules._documents import DocumentStatus
from inventory_modules._posting_helpers import (
    PostingOutcome,
    ReversibleDocumentService,
    split_posted,
)
from inventory_modules.production.models import IngredientInput, ProductionOutput
from inventory_modules.production.orm import (
    ProductionIngredientModel,
    ProductionOrderModel,
)

logger = get_logger("modules.production.service")

REF_TYPE = "PROD"


class ProductionService(ReversibleDocumentService):
    """Production orders: ingredients in, finished goods out."""

    document_type = REF_TYPE
    model = ProductionOrderModel

    def create(
        self,
        location_id: UUID,
        output: ProductionOutput,
        ingredients: Sequence[IngredientInput],
        *,
        notes: str | None = None,
    ) -> ProductionOrderModel:
        if not ingredients:
            raise ValidationError(
                "a production order needs at least one ingredient", field="ingredients",
            )
        for ingredient in ingredients:
            if ingredient.lot_id is not None:
                self.lots.require_for_key(ingredient.lot_id, ingredient.product_id, location_id)

        order = ProductionOrderModel(
            tenant_id=self.tenant_id,
            location_id=location_id,
            status=DocumentStatus.DRAFT.value,
            notes=notes,
            output_product_id=output.product_id,
            output_quantity=output.quantity,
            output_lot_no=output.lot_no,
            output_expiry_date=output.expiry_date,
            created_by_id=self.context.actor_id,
            ingredients=[
                ProductionIngredientModel(
                    line_no=number,
                    product_id=ingredient.product_id,
                    quantity=ingredient.quantity,
                    lot_id=ingredient.lot_id,
                )
                for number, ingredient in enumerate(ingredients, start=1)
            ],
        )
        self.session.add(order)
        self.session.flush()
        logger.info(
            "production_order_created",
            extra={
                "production_order_id": order.id,
                "output_product_id": output.product_id,
                "ingredient_count": len(ingredients),
            },
        )
        return order

    def post(self, production_order_id: UUID) -> PostingOutcome:
        with self.log_scope(ref_type=REF_TYPE, ref_id=str(production_order_id)):
            order = self._claim(production_order_id)
            ref_id = str(order.id)

            consumed = [
                MovementInput(
                    product_id=ingredient.product_id,
                    location_id=order.location_id,
                    movement_type=MovementType.PRODUCTION_OUT,
                    quantity=-ingredient.quantity,
                    ref_type=REF_TYPE,
                    ref_id=ref_id,
                    lot_id=ingredient.lot_id,
                    note=f"Production ingredient {ingredient.line_no}",
                    metadata={"line_no": ingredient.line_no},
                )
                for ingredient in order.ingredients
            ]
            issued = self.poster.post_batch(consumed)

            total_cost = ZERO
            groups = split_posted(issued, [m.quantity for m in consumed])
            for ingredient, rows in zip(order.ingredients, groups):
                ingredient.cost_amount = -sum((row.value for row in rows), ZERO)
                total_cost += ingredient.cost_amount

            if order.output_lot_no:
                order.output_lot_id = self.lots.find_or_create(
                    LotInput(
                        product_id=order.output_product_id,
                        location_id=order.location_id,
                        lot_no=order.output_lot_no,
                        expiry_date=order.output_expiry_date,
                        manufacture_date=self.clock.business_date(),
                        received_date=self.clock.business_date(),
                    )
                )
            produced = self.poster.post_batch([
                MovementInput(
                    product_id=order.output_product_id,
                    location_id=order.location_id,
                    movement_type=MovementType.PRODUCTION_IN,
                    quantity=order.output_quantity,
                    ref_type=REF_TYPE,
                    ref_id=ref_id,
                    unit_cost=total_cost / order.output_quantity,
                    lot_id=order.output_lot_id,
                    note="Production output",
                    metadata={"ingredient_cost": str(total_cost)},
                )
            ])
            order.output_unit_cost = produced[0].unit_cost

            logger.info(
                "production_output_costed",
                extra={
                    "production_order_id": order.id,
                    "ingredient_cost": total_cost,
                    "output_quantity": order.output_quantity,
                    "output_unit_cost": order.output_unit_cost,
                },
            )
            return self._outcome(order.id, DocumentStatus.POSTED, [*issued, *produced])
