"""Abstract repository for SaleEvent.

Sales are append-only. ``add`` is the single way to record one, and it
hands the sale to every registered listener before storing it. The
inventory ledger registers itself as a listener, which is what keeps
stock in step with recorded sales.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from stockledger.domain.exceptions import LedgerBypassError, ValidationError
from stockledger.domain.model.sale import SaleEvent
from stockledger.domain.model.value_objects import StockKey

SaleListener = Callable[[SaleEvent], None]


class SaleRepository(ABC):

    def __init__(self) -> None:
        self._listeners: list[SaleListener] = []

    def on_add(self, listener: SaleListener) -> None:
        self._listeners.append(listener)

    def add(self, sale: SaleEvent) -> None:
        """Record a sale. Listeners run first; any error aborts the add.

        Raises LedgerBypassError when nothing is listening: a sale stored
        that way would never reach stock.
        """
        if not self._listeners:
            raise LedgerBypassError(
                "Sales can only be recorded in a unit of work from "
                "InventoryLedger.unit_of_work()"
            )
        if self.get_by_id(sale.id) is not None:
            raise ValidationError(f"Sale '{sale.id}' has already been recorded")
        for listener in self._listeners:
            listener(sale)
        self._insert(sale)

    @abstractmethod
    def _insert(self, sale: SaleEvent) -> None:
        """Store the sale."""

    @abstractmethod
    def get_by_id(self, sale_id: str) -> SaleEvent | None:
        """Return a sale by its ID, or None."""

    @abstractmethod
    def list_for(self, key: StockKey) -> list[SaleEvent]:
        """Return the sales recorded against a key, oldest first."""
