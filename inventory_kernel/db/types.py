"""
Module: inventory_kernel.db.types
Responsibility: Annotated column types and the decimal helpers every model and
    service uses for quantities and unit costs.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats anywhere.  to_decimal() rejects float input outright.
    - round_cost() is the ONLY sanctioned rounding of a unit cost, applied
      once when a ledger entry is persisted.
"""

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from sqlalchemy import JSON, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB

# Signed base-unit quantity and unit cost share one precision.
Quantity = Annotated[Decimal, Numeric(38, 9)]
UnitCost = Annotated[Decimal, Numeric(38, 9)]

# Short identifier strings (movement types, ref types, statuses)
ShortCode = Annotated[str, String(32)]

# Free-form notes
Note = Annotated[str, Text]

# JSON metadata: JSONB on PostgreSQL, JSON elsewhere
JsonDocument = JSON().with_variant(JSONB(), "postgresql")

DEFAULT_COST_DECIMAL_PLACES = 6
DEFAULT_QUANTITY_DECIMAL_PLACES = 6
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


def to_decimal(value: Any, field: str = "value") -> Decimal:
    """
    Coerce int/str/Decimal to Decimal.

    Raises:
        TypeError: value is a float or bool (binary floats are never accepted).
        ValueError: value is not a finite number.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"{field} must be Decimal, int or str, not {type(value).__name__}")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"{field} is not a number: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"{field} must be finite: {value!r}")
    return result


def from_db_number(value: Any) -> Decimal:
    """Normalize an aggregate read back from the database to Decimal."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"non-finite aggregate: {value!r}")
        return Decimal(repr(value))
    return Decimal(value)


def round_cost(
    value: Decimal,
    decimal_places: int = DEFAULT_COST_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """Round a unit cost to the configured number of decimal places."""
    quantizer = Decimal(10) ** -decimal_places
    return value.quantize(quantizer, rounding=rounding)


def exceeds_precision(value: Decimal, decimal_places: int) -> bool:
    """True when value carries more significant decimal places than allowed."""
    exponent = value.normalize().as_tuple().exponent
    return isinstance(exponent, int) and -exponent > decimal_places
