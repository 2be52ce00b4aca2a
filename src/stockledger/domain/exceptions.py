"""Domain-level exceptions.

All ledger rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class InvalidQuantityError(ValidationError):
    """A quantity was zero, negative or not an integer."""


class InsufficientStockError(ValidationError):
    """Applying a sale would take stock below zero under the strict policy."""

    def __init__(
        self, product_id: str, warehouse_id: str, requested: int, available: int
    ) -> None:
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product '{product_id}' at warehouse "
            f"'{warehouse_id}' (need {requested}, have {available})"
        )


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class UnknownProductError(EntityNotFoundError):
    """No product, or no inventory record for a product/warehouse pair."""


class ConcurrencyTimeoutError(DomainException):
    """A per-key stock lock could not be acquired in time.

    Safe to retry: nothing was written.
    """

    retryable = True


class StorageFailureError(DomainException):
    """The persistence backend failed; the unit of work was rolled back."""


class ConcurrentUpdateError(ConcurrencyTimeoutError):
    """Another writer changed a stock counter after this unit read it.

    The unit is discarded and, like a lock timeout, can be retried.
    """

    def __init__(self, key: object, expected: int | None, found: int | None) -> None:
        self.key = key
        self.expected = expected
        self.found = found
        super().__init__(
            f"Stock for {key} changed from {expected} to {found} since it was read"
        )


class LedgerBypassError(DomainException):
    """A sale was added to a unit of work the inventory ledger does not watch."""
