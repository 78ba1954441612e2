"""
ORM-Level Append-Only Enforcement (Layer 1 of 2).

===============================================================================
WHY THIS EXISTS
===============================================================================

On-hand stock and inventory value are derived from history.  If a ledger row
or a consumption row could be edited, conservation between the ledger and
the cost layers would silently break.  Corrections are made with new,
compensating rows (see services/reversal_builder.py), never by edits.

  Layer 1: THIS FILE (ORM event listeners)
    - Catches modifications through SQLAlchemy before SQL is emitted

  Layer 2: db/sql/*.sql (PostgreSQL triggers)
    - Catches raw SQL and bulk statements at the database

Both layers enforce the SAME rules.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                | Rule
----------------------|-----------------------------------------------------
StockLedgerEntry      | No UPDATE, no DELETE
CostLayerConsumption  | No UPDATE, no DELETE
CostLayer             | No DELETE; only qty_remaining_base may change, only
                      | downwards and never below zero; deficit layers frozen
Lot                   | No DELETE; natural key fields never change

===============================================================================
USAGE
===============================================================================

    from inventory_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests that must violate a rule on purpose call
unregister_immutability_listeners() and re-register afterwards.

===============================================================================
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_LAYER_FROZEN_FIELDS = (
    "tenant_id",
    "product_id",
    "location_id",
    "lot_id",
    "qty_received_base",
    "unit_cost",
    "source_type",
    "source_id",
    "ledger_entry_id",
    "created_at",
)

_LOT_KEY_FIELDS = ("tenant_id", "product_id", "location_id", "lot_no")


def _blocked(entity_type: str, target, operation: str, reason: str) -> ImmutabilityViolationError:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _changed_fields(target, fields) -> list[str]:
    return [name for name in fields if get_history(target, name).has_changes()]


def _check_ledger_entry_update(mapper, connection, target):
    """Stock ledger entries are never updated."""
    raise _blocked(
        "StockLedgerEntry", target, "UPDATE",
        "Stock ledger entries are append-only; post a reversal instead",
    )


def _check_ledger_entry_delete(mapper, connection, target):
    """Stock ledger entries are never deleted."""
    raise _blocked(
        "StockLedgerEntry", target, "DELETE",
        "Stock ledger entries cannot be deleted",
    )


def _check_consumption_update(mapper, connection, target):
    raise _blocked(
        "CostLayerConsumption", target, "UPDATE",
        "Consumption trail rows are append-only",
    )


def _check_consumption_delete(mapper, connection, target):
    raise _blocked(
        "CostLayerConsumption", target, "DELETE",
        "Consumption trail rows cannot be deleted",
    )


def _check_cost_layer_update(mapper, connection, target):
    """
    Only qty_remaining_base may change, and only from a non-negative value
    downwards to a value >= 0.
    """
    frozen = _changed_fields(target, _LAYER_FROZEN_FIELDS)
    if frozen:
        raise _blocked(
            "CostLayer", target, "UPDATE",
            f"Cost layer fields are immutable: {', '.join(frozen)}",
        )

    history = get_history(target, "qty_remaining_base")
    if not history.has_changes():
        return
    old = history.deleted[0] if history.deleted else None
    new = history.added[0] if history.added else None
    if old is not None and old < 0:
        raise _blocked(
            "CostLayer", target, "UPDATE",
            "Deficit layers cannot change",
        )
    if new is None or new < 0 or (old is not None and new > old):
        raise _blocked(
            "CostLayer", target, "UPDATE",
            f"Remaining quantity may only decrease to >= 0 (was {old}, got {new})",
        )


def _check_cost_layer_delete(mapper, connection, target):
    raise _blocked(
        "CostLayer", target, "DELETE",
        "Cost layers are retained even when exhausted",
    )


def _check_lot_update(mapper, connection, target):
    changed = _changed_fields(target, _LOT_KEY_FIELDS)
    if changed:
        raise _blocked(
            "Lot", target, "UPDATE",
            f"Lot natural key is immutable: {', '.join(changed)}",
        )


def _check_lot_delete(mapper, connection, target):
    raise _blocked("Lot", target, "DELETE", "Lots cannot be deleted")


def _listeners():
    from inventory_kernel.models import CostLayer, CostLayerConsumption, Lot, StockLedgerEntry

    return [
        (StockLedgerEntry, "before_update", _check_ledger_entry_update),
        (StockLedgerEntry, "before_delete", _check_ledger_entry_delete),
        (CostLayerConsumption, "before_update", _check_consumption_update),
        (CostLayerConsumption, "before_delete", _check_consumption_delete),
        (CostLayer, "before_update", _check_cost_layer_update),
        (CostLayer, "before_delete", _check_cost_layer_delete),
        (Lot, "before_update", _check_lot_update),
        (Lot, "before_delete", _check_lot_delete),
    ]


def register_immutability_listeners() -> None:
    """
    Register all append-only enforcement listeners.  Idempotent.

    Call after models are importable and before any database work begins.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners() -> None:
    """
    Remove the listeners.

    WARNING: Only for tests that intentionally violate a rule.
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
