"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SaleReceiptDTO:
    """Output: a recorded sale and the stock left after it."""

    sale_id: str
    order_id: str
    product_id: str
    warehouse_id: str
    quantity: int
    unit_price: str  # formatted, e.g. "$15.00"
    total_sale: str
    stock_after: int


@dataclass(frozen=True)
class InventoryLineDTO:
    product_id: str
    product_name: str
    warehouse_id: str
    stock: int
    last_stock_date: str  # ISO timestamp, "" if never updated
    backordered: bool


@dataclass(frozen=True)
class StockMovementDTO:
    kind: str
    quantity_change: int
    previous_level: int
    new_level: int
    occurred_at: str
    sale_id: str | None
