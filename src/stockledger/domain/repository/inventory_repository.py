"""Abstract repository for InventoryRecord and its movement history."""

from __future__ import annotations

from abc import ABC, abstractmethod

from stockledger.domain.model.inventory import InventoryRecord, StockMovement
from stockledger.domain.model.value_objects import StockKey


class InventoryRepository(ABC):

    @abstractmethod
    def get(self, key: StockKey) -> InventoryRecord | None:
        """Return the inventory record for a key, or None."""

    def get_for_update(self, key: StockKey) -> InventoryRecord | None:
        """Return the record for a key that is about to be written.

        Backends with row-level locking override this.
        """
        return self.get(key)

    @abstractmethod
    def list_all(self) -> list[InventoryRecord]:
        """Return every inventory record."""

    @abstractmethod
    def save(self, record: InventoryRecord) -> None:
        """Persist a new or updated inventory record."""

    @abstractmethod
    def add_movement(self, movement: StockMovement) -> None:
        """Append an entry to the stock history."""

    @abstractmethod
    def movements_for(self, key: StockKey) -> list[StockMovement]:
        """Return the stock history of a key, oldest first."""
