"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (REST adapters, the bulk transfer runner, report jobs) must react to
failures by KIND, not by parsing messages:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        coordinator.transfer(request, actor)
    except Exception as e:
        if "Insufficient" in str(e):  # FRAGILE - message might change
            ...

Example - RIGHT way (what this module enables):
    try:
        coordinator.transfer(request, actor)
    except InsufficientStockError as e:
        api_response(code=e.code, sku=e.sku, available=e.available)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from InventoryKernelError:

    InventoryKernelError (base)
    |
    +-- ResourceError
    |   +-- ResourceNotFoundError
    |   +-- DuplicateResourceError
    |
    +-- OperationError
    |   +-- InvalidOperationError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |
    +-- CapacityError
    |   +-- CapacityExceededError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Resource        | RESOURCE_NOT_FOUND          | Warehouse / record id or key unknown
                | DUPLICATE_RESOURCE          | Warehouse name or (sku, warehouse) taken
----------------|-----------------------------|-----------------------------------------
Operation       | INVALID_OPERATION           | Same-warehouse transfer, inactive
                |                             | warehouse, negative resulting quantity,
                |                             | non-empty warehouse deletion
----------------|-----------------------------|-----------------------------------------
Stock           | INSUFFICIENT_STOCK          | Transfer asks for more than on hand
----------------|-----------------------------|-----------------------------------------
Capacity        | CAPACITY_EXCEEDED           | Added volume exceeds available space
----------------|-----------------------------|-----------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT    | Concurrent modification detected
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Modifying / deleting a ledger entry

===============================================================================
HANDLING PATTERNS
===============================================================================

1. CATCH SPECIFIC EXCEPTIONS (not base classes):

    try:
        service.adjust_quantity(request, actor)
    except CapacityExceededError as e:
        notify_user(f"{e.warehouse_name} has {e.available_volume} free")
    except InventoryKernelError as e:
        log.error(f"Adjustment failed: {e.code}")

2. BULK MODE converts every error into a structured entry:

    except InventoryKernelError as e:
        errors.append(TransferError(index=i, sku=req.sku,
                                    message=str(e), code=e.code))

3. CONCURRENCY ERRORS are safe to retry:

    except ConcurrencyError:
        retry_operation()

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


# Resource-related exceptions


class ResourceError(InventoryKernelError):
    """Base exception for lookup and uniqueness errors."""

    code: str = "RESOURCE_ERROR"


class ResourceNotFoundError(ResourceError):
    """Entity with the given key was not found."""

    code: str = "RESOURCE_NOT_FOUND"

    def __init__(self, entity_kind: str, key: str):
        self.entity_kind = entity_kind
        self.key = key
        super().__init__(f"{entity_kind} not found: {key}")


class DuplicateResourceError(ResourceError):
    """An entity with the given unique key already exists."""

    code: str = "DUPLICATE_RESOURCE"

    def __init__(self, entity_kind: str, key: str):
        self.entity_kind = entity_kind
        self.key = key
        super().__init__(f"{entity_kind} already exists: {key}")


# Operation-related exceptions


class OperationError(InventoryKernelError):
    """Base exception for requests that are well-formed but not allowed."""

    code: str = "OPERATION_ERROR"


class InvalidOperationError(OperationError):
    """
    The requested mutation violates a business rule.

    Raised for same-warehouse transfers, inactive warehouses, adjustments
    that would drive quantity negative, and deletion of warehouses that
    still hold stock.
    """

    code: str = "INVALID_OPERATION"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


# Stock-related exceptions


class StockError(InventoryKernelError):
    """Base exception for stock level errors."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """Source record holds fewer units than requested."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, sku: str, available: int, requested: int):
        self.sku = sku
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for SKU {sku}: "
            f"available {available}, requested {requested}"
        )


# Capacity-related exceptions


class CapacityError(InventoryKernelError):
    """Base exception for volumetric capacity errors."""

    code: str = "CAPACITY_ERROR"


class CapacityExceededError(CapacityError):
    """Adding the requested volume would exceed the warehouse maximum."""

    code: str = "CAPACITY_EXCEEDED"

    def __init__(
        self,
        warehouse_name: str,
        available_volume: Decimal,
        requested_volume: Decimal,
    ):
        self.warehouse_name = warehouse_name
        self.available_volume = available_volume
        self.requested_volume = requested_volume
        super().__init__(
            f"Warehouse '{warehouse_name}' capacity exceeded: "
            f"available {available_volume}, requested {requested_volume}"
        )


# Concurrency-related exceptions


class ConcurrencyError(InventoryKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Immutability-related exceptions


class ImmutabilityError(InventoryKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only ledger entry."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
