"""
Movement types -- the closed vocabulary of the stock ledger.

Responsibility:
    Enumerates every kind of stock movement, the quantity sign each kind
    requires, and the reversal variant of each kind.

Architecture position:
    Kernel > Domain.  Pure, zero I/O.

Invariants enforced:
    - Every MovementType has exactly one entry in _SIGN and exactly one in
      _REVERSAL_OF; checked when this module is imported.
    - A reversal type cannot itself be reversed.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum


class MovementType(str, Enum):
    """Stock ledger movement types.  Values are the stored codes."""

    RECEIPT = "rcv"
    ISSUE = "iss"
    ADJUSTMENT = "adj"
    TRANSFER_OUT = "xfer_out"
    TRANSFER_IN = "xfer_in"
    PRODUCTION_OUT = "prod_out"
    PRODUCTION_IN = "prod_in"

    RECEIPT_REVERSAL = "rcv_rev"
    ISSUE_REVERSAL = "iss_rev"
    ADJUSTMENT_REVERSAL = "adj_rev"
    TRANSFER_OUT_REVERSAL = "xfer_out_rev"
    TRANSFER_IN_REVERSAL = "xfer_in_rev"
    PRODUCTION_OUT_REVERSAL = "prod_out_rev"
    PRODUCTION_IN_REVERSAL = "prod_in_rev"

    @property
    def is_reversal(self) -> bool:
        return self in _REVERSAL_TYPES

    @property
    def required_sign(self) -> int:
        """+1 inbound only, -1 outbound only, 0 either sign."""
        return _SIGN[self]

    def reversal(self) -> MovementType:
        """The type that compensates this one."""
        reversed_type = _REVERSAL_OF[self]
        if reversed_type is None:
            raise ValueError(f"{self.value} is a reversal and cannot be reversed")
        return reversed_type

    def accepts(self, quantity: Decimal) -> bool:
        """True if a non-zero quantity has the sign this type requires."""
        sign = _SIGN[self]
        if sign == 0:
            return True
        return (quantity > 0) if sign > 0 else (quantity < 0)


_SIGN: dict[MovementType, int] = {
    MovementType.RECEIPT: 1,
    MovementType.ISSUE: -1,
    MovementType.ADJUSTMENT: 0,
    MovementType.TRANSFER_OUT: -1,
    MovementType.TRANSFER_IN: 1,
    MovementType.PRODUCTION_OUT: -1,
    MovementType.PRODUCTION_IN: 1,
    MovementType.RECEIPT_REVERSAL: -1,
    MovementType.ISSUE_REVERSAL: 1,
    MovementType.ADJUSTMENT_REVERSAL: 0,
    MovementType.TRANSFER_OUT_REVERSAL: 1,
    MovementType.TRANSFER_IN_REVERSAL: -1,
    MovementType.PRODUCTION_OUT_REVERSAL: 1,
    MovementType.PRODUCTION_IN_REVERSAL: -1,
}

_REVERSAL_OF: dict[MovementType, MovementType | None] = {
    MovementType.RECEIPT: MovementType.RECEIPT_REVERSAL,
    MovementType.ISSUE: MovementType.ISSUE_REVERSAL,
    MovementType.ADJUSTMENT: MovementType.ADJUSTMENT_REVERSAL,
    MovementType.TRANSFER_OUT: MovementType.TRANSFER_OUT_REVERSAL,
    MovementType.TRANSFER_IN: MovementType.TRANSFER_IN_REVERSAL,
    MovementType.PRODUCTION_OUT: MovementType.PRODUCTION_OUT_REVERSAL,
    MovementType.PRODUCTION_IN: MovementType.PRODUCTION_IN_REVERSAL,
    MovementType.RECEIPT_REVERSAL: None,
    MovementType.ISSUE_REVERSAL: None,
    MovementType.ADJUSTMENT_REVERSAL: None,
    MovementType.TRANSFER_OUT_REVERSAL: None,
    MovementType.TRANSFER_IN_REVERSAL: None,
    MovementType.PRODUCTION_OUT_REVERSAL: None,
    MovementType.PRODUCTION_IN_REVERSAL: None,
}

_REVERSAL_TYPES = frozenset(t for t, rev in _REVERSAL_OF.items() if rev is None)


def _check_tables_complete() -> None:
    missing = set(MovementType) - set(_SIGN) | set(MovementType) - set(_REVERSAL_OF)
    if missing:
        raise RuntimeError(
            f"movement tables incomplete: {sorted(t.value for t in missing)}"
        )


_check_tables_complete()
