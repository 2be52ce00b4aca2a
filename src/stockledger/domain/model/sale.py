"""SaleEvent: one order line, as handed over by order capture."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from stockledger.domain.exceptions import ValidationError
from stockledger.domain.model.value_objects import Money, Quantity, StockKey


@dataclass(frozen=True)
class SaleEvent:
    """Immutable record of a product sold in a given quantity.

    The warehouse is part of the event: order capture must say which
    inventory record the sale draws from.
    """

    id: str
    order_id: str
    product_id: str
    warehouse_id: str
    quantity: Quantity
    unit_price: Money  # price actually charged, not the catalog price
    recorded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def key(self) -> StockKey:
        return StockKey(self.product_id, self.warehouse_id)

    @property
    def total_sale(self) -> Money:
        return self.unit_price * self.quantity.value

    @staticmethod
    def create(
        order_id: str,
        product_id: str,
        warehouse_id: str,
        quantity: int,
        unit_price: Money,
        recorded_at: datetime | None = None,
    ) -> SaleEvent:
        """Build a new sale with a fresh id, validating every field."""
        for name, value in (
            ("Order", order_id),
            ("Product", product_id),
            ("Warehouse", warehouse_id),
        ):
            if not value or not str(value).strip():
                raise ValidationError(f"{name} id is required")

        return SaleEvent(
            id=str(uuid.uuid4()),
            order_id=str(order_id).strip(),
            product_id=str(product_id).strip(),
            warehouse_id=str(warehouse_id).strip(),
            quantity=Quantity(quantity),
            unit_price=unit_price,
            recorded_at=recorded_at or datetime.now(timezone.utc),
        )
