"""InventoryRecord aggregate: stock for one product at one warehouse.

Every change to ``stock`` goes through a method here and returns the
StockMovement describing it, so callers can append it to the history.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from stockledger.domain.exceptions import (
    InsufficientStockError,
    InvalidQuantityError,
)
from stockledger.domain.model.value_objects import Quantity, StockKey


class StockPolicy(Enum):
    """What to do when a sale would take stock below zero."""

    STRICT = "strict"  # reject the sale
    BACKORDER = "backorder"  # accept it, stock goes negative


class MovementKind(Enum):
    STOCKED = "stocked"
    RECEIVED = "received"
    SALE = "sale"


@dataclass(frozen=True)
class StockMovement:
    """One entry in the append-only stock history of a record."""

    product_id: str
    warehouse_id: str
    kind: MovementKind
    quantity_change: int
    previous_level: int
    new_level: int
    occurred_at: datetime
    sale_id: str | None = None

    @property
    def key(self) -> StockKey:
        return StockKey(self.product_id, self.warehouse_id)


@dataclass
class InventoryRecord:
    """Aggregate root for the stock counter of a (product, warehouse) pair.

    Invariants:
    - under ``StockPolicy.STRICT`` a sale never takes ``stock`` below zero
    - ``last_stock_date`` moves forward with every applied change
    """

    product_id: str
    warehouse_id: str
    stock: int
    last_stock_date: datetime | None = None

    @property
    def key(self) -> StockKey:
        return StockKey(self.product_id, self.warehouse_id)

    @property
    def is_backordered(self) -> bool:
        return self.stock < 0

    def deduct(
        self,
        quantity: int,
        policy: StockPolicy,
        at: datetime,
        sale_id: str | None = None,
    ) -> StockMovement:
        """Take sold units out of stock.

        Raises InvalidQuantityError for non-positive quantities and
        InsufficientStockError when the strict policy forbids the result.
        Nothing is changed when either is raised.
        """
        qty = Quantity(quantity).value
        new_stock = self.stock - qty
        if new_stock < 0 and policy is StockPolicy.STRICT:
            raise InsufficientStockError(
                self.product_id, self.warehouse_id, requested=qty, available=self.stock
            )
        return self._move_to(new_stock, MovementKind.SALE, at, sale_id)

    def receive(self, quantity: int, at: datetime) -> StockMovement:
        """Add restocked units."""
        qty = Quantity(quantity).value
        return self._move_to(self.stock + qty, MovementKind.RECEIVED, at)

    def set_level(self, quantity: int, at: datetime) -> StockMovement:
        """Overwrite the counter after a physical count."""
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 0:
            raise InvalidQuantityError(
                f"Stock level must be a non-negative integer, got {quantity!r}"
            )
        return self._move_to(quantity, MovementKind.STOCKED, at)

    @classmethod
    def open(
        cls, key: StockKey, quantity: int, at: datetime
    ) -> tuple[InventoryRecord, StockMovement]:
        """Create the record for a key at initial stocking."""
        record = cls(product_id=key.product_id, warehouse_id=key.warehouse_id, stock=0)
        return record, record.set_level(quantity, at)

    def _move_to(
        self,
        new_stock: int,
        kind: MovementKind,
        at: datetime,
        sale_id: str | None = None,
    ) -> StockMovement:
        movement = StockMovement(
            product_id=self.product_id,
            warehouse_id=self.warehouse_id,
            kind=kind,
            quantity_change=new_stock - self.stock,
            previous_level=self.stock,
            new_level=new_stock,
            occurred_at=at,
            sale_id=sale_id,
        )
        self.stock = new_stock
        self.last_stock_date = at
        return movement
