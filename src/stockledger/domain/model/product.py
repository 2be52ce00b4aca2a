"""Product reference data.

Products are owned by the catalog, not by the ledger. The ledger only
needs to know that a product exists and what it sells for.
"""

from __future__ import annotations

from dataclasses import dataclass

from stockledger.domain.exceptions import ValidationError
from stockledger.domain.model.value_objects import Money


@dataclass(frozen=True)
class Product:
    """A product in the catalog.

    ``cogs`` is the cost of goods sold per unit, when known.
    """

    id: str
    name: str
    price: Money
    cogs: Money | None = None
    category_id: str | None = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Product name is required")
        if self.price.amount <= 0:
            raise ValidationError("Product price must be greater than zero")

    @property
    def unit_margin(self) -> Money | None:
        """Price minus cogs, or None if cogs is unknown or exceeds the price."""
        if self.cogs is None or self.price < self.cogs:
            return None
        return self.price - self.cogs
