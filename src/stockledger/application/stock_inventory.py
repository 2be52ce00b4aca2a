"""Application services: Stock Inventory and Receive Stock use cases."""

from __future__ import annotations

from stockledger.domain.exceptions import EntityNotFoundError
from stockledger.domain.model.value_objects import StockKey
from stockledger.domain.repository.unit_of_work import UnitOfWork
from stockledger.domain.service.inventory_ledger import InventoryLedger


def _require_product(uow: UnitOfWork, product_id: str) -> None:
    if uow.products.get_by_id(product_id) is None:
        raise EntityNotFoundError(f"Product not found: '{product_id}'")


class StockInventoryHandler:

    def __init__(self, ledger: InventoryLedger) -> None:
        self._ledger = ledger

    def handle(self, product_id: str, warehouse_id: str, quantity: int) -> int:
        """Set the stock level of a product at a warehouse."""
        key = StockKey(product_id, warehouse_id)

        def work(uow: UnitOfWork) -> int:
            _require_product(uow, product_id)
            return self._ledger.set_level(uow, key, quantity)

        return self._ledger.run(work)


class ReceiveStockHandler:

    def __init__(self, ledger: InventoryLedger) -> None:
        self._ledger = ledger

    def handle(self, product_id: str, warehouse_id: str, quantity: int) -> int:
        """Add a delivery to existing stock."""
        key = StockKey(product_id, warehouse_id)

        def work(uow: UnitOfWork) -> int:
            _require_product(uow, product_id)
            return self._ledger.receive(uow, key, quantity)

        return self._ledger.run(work)
