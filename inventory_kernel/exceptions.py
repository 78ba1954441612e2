"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Stock postings fail for a handful of well-understood reasons: the request is
malformed, a referenced row does not exist, there is not enough stock, the
document was already posted, or another transaction holds the layers. Callers
(HTTP adapters, batch jobs, the transaction runner) must react to each of these
differently, so every failure is a TYPED exception with:
  1. A CODE class attribute (machine-readable, API-safe)
  2. Structured attributes (not just a message string)

Example:
    try:
        orders.post(order_id)
    except InsufficientStockError as e:
        api_response(409, code=e.code, product=e.product_id,
                     requested=e.requested, available=e.available)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- ValidationError
    |   +-- NegativeStockPolicyError
    |
    +-- NotFoundError
    |   +-- LotNotFoundError
    |   +-- CostLayerNotFoundError
    |   +-- DocumentNotFoundError
    |   +-- NothingToReverseError
    |
    +-- InsufficientStockError
    |
    +-- PostingError
    |   +-- AlreadyPostedError
    |   +-- NotPostedError
    |
    +-- ReversalError
    |   +-- AlreadyReversedError
    |
    +-- ConcurrencyError
    |   +-- ConcurrencyConflictError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                     | When Raised
--------------|--------------------------|-------------------------------------------
Validation    | VALIDATION_ERROR         | Malformed movement or document input
              | NEGATIVE_STOCK_POLICY    | Caller flag contradicts configured policy
--------------|--------------------------|-------------------------------------------
Not found     | LOT_NOT_FOUND            | Lot id unknown for tenant/product/location
              | COST_LAYER_NOT_FOUND     | Layer id unknown
              | DOCUMENT_NOT_FOUND       | Document id unknown for tenant
              | NOTHING_TO_REVERSE       | Reference has no ledger entries
--------------|--------------------------|-------------------------------------------
Stock         | INSUFFICIENT_STOCK       | FIFO layers exhausted under reject policy
--------------|--------------------------|-------------------------------------------
Posting       | ALREADY_POSTED           | Status guard found document not in draft
              | NOT_POSTED               | Void requested for a non-posted document
--------------|--------------------------|-------------------------------------------
Reversal      | ALREADY_REVERSED         | Reference entries already compensated
--------------|--------------------------|-------------------------------------------
Concurrency   | CONCURRENCY_CONFLICT     | Lock timeout, deadlock, serialization fail
--------------|--------------------------|-------------------------------------------
Immutability  | IMMUTABILITY_VIOLATION   | Update/delete of an append-only row

===============================================================================
DESIGN DECISIONS
===============================================================================

1. ConcurrencyConflictError is the ONLY retryable error. TransactionRunner
   retries it with bounded backoff; everything else propagates unchanged.

2. Validation errors are raised before any write. All other errors may be
   raised mid-transaction; the caller rolls back.

3. InsufficientStockError is not a ValidationError: the same request may
   succeed later once stock arrives.

===============================================================================
"""

from decimal import Decimal


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Validation exceptions


class ValidationError(InventoryKernelError):
    """Input rejected before any write."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class NegativeStockPolicyError(ValidationError):
    """Caller asked for negative stock where the configured policy rejects it."""

    code: str = "NEGATIVE_STOCK_POLICY"

    def __init__(self, tenant_id: str, product_id: str, policy: str):
        self.tenant_id = tenant_id
        self.product_id = product_id
        self.policy = policy
        super().__init__(
            f"Negative stock requested for product {product_id} "
            f"but tenant {tenant_id} policy is {policy}",
            field="allow_negative",
        )


# Lookup exceptions


class NotFoundError(InventoryKernelError):
    """Base exception for missing rows."""

    code: str = "NOT_FOUND"


class LotNotFoundError(NotFoundError):
    """Lot does not exist for the tenant, product and location."""

    code: str = "LOT_NOT_FOUND"

    def __init__(self, lot_id: str, product_id: str | None = None,
                 location_id: str | None = None):
        self.lot_id = lot_id
        self.product_id = product_id
        self.location_id = location_id
        super().__init__(f"Lot not found: {lot_id}")


class CostLayerNotFoundError(NotFoundError):
    """Cost layer with given id was not found."""

    code: str = "COST_LAYER_NOT_FOUND"

    def __init__(self, layer_id: str):
        self.layer_id = layer_id
        super().__init__(f"Cost layer not found: {layer_id}")


class DocumentNotFoundError(NotFoundError):
    """Business document was not found for the tenant."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_type: str, document_id: str):
        self.document_type = document_type
        self.document_id = document_id
        super().__init__(f"{document_type} not found: {document_id}")


class NothingToReverseError(NotFoundError):
    """No ledger entries exist for the reference being reversed."""

    code: str = "NOTHING_TO_REVERSE"

    def __init__(self, ref_type: str, ref_id: str):
        self.ref_type = ref_type
        self.ref_id = ref_id
        super().__init__(f"No ledger entries for {ref_type} {ref_id}")


# Stock exceptions


class InsufficientStockError(InventoryKernelError):
    """FIFO layers cannot cover the requested quantity."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        product_id: str,
        location_id: str,
        requested: Decimal,
        available: Decimal,
        lot_id: str | None = None,
    ):
        self.product_id = product_id
        self.location_id = location_id
        self.lot_id = lot_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id} at {location_id}: "
            f"requested {requested}, available {available}"
        )


# Posting exceptions


class PostingError(InventoryKernelError):
    """Base exception for document posting errors."""

    code: str = "POSTING_ERROR"


class AlreadyPostedError(PostingError):
    """Document left the postable state before this request."""

    code: str = "ALREADY_POSTED"

    def __init__(self, document_type: str, document_id: str, status: str):
        self.document_type = document_type
        self.document_id = document_id
        self.status = status
        super().__init__(
            f"{document_type} {document_id} cannot be posted: status is {status}"
        )


class NotPostedError(PostingError):
    """Void requested for a document that is not posted."""

    code: str = "NOT_POSTED"

    def __init__(self, document_type: str, document_id: str, status: str):
        self.document_type = document_type
        self.document_id = document_id
        self.status = status
        super().__init__(
            f"{document_type} {document_id} cannot be voided: status is {status}"
        )


# Reversal exceptions


class ReversalError(InventoryKernelError):
    """Base exception for reversal errors."""

    code: str = "REVERSAL_ERROR"


class AlreadyReversedError(ReversalError):
    """Ledger entries of the reference have already been reversed."""

    code: str = "ALREADY_REVERSED"

    def __init__(self, ref_type: str, ref_id: str, entry_ids: list[int]):
        self.ref_type = ref_type
        self.ref_id = ref_id
        self.entry_ids = entry_ids
        super().__init__(
            f"{ref_type} {ref_id} already reversed (entries {entry_ids})"
        )


# Concurrency exceptions


class ConcurrencyError(InventoryKernelError):
    """Base exception for concurrency errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrencyConflictError(ConcurrencyError):
    """Lock wait, deadlock or serialization failure. Safe to retry."""

    code: str = "CONCURRENCY_CONFLICT"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Concurrency conflict during {operation}: {reason}")


# Immutability exceptions


class ImmutabilityError(InventoryKernelError):
    """Base exception for immutability errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
