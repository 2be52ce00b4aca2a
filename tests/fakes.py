"""In-memory fakes for testing.

They implement the same abstract interfaces as the JSON and SQL
backends and keep the same rules: a unit of work stages its writes and
publishes them under the store lock on commit, so reads inside a unit
see the latest committed state plus their own changes.
"""

from __future__ import annotations

import threading
import time
from dataclasses import replace

from stockledger.domain.model.inventory import InventoryRecord, StockMovement
from stockledger.domain.model.product import Product
from stockledger.domain.model.sale import SaleEvent
from stockledger.domain.model.value_objects import StockKey
from stockledger.domain.repository.inventory_repository import InventoryRepository
from stockledger.domain.repository.product_repository import ProductRepository
from stockledger.domain.repository.sale_repository import SaleRepository
from stockledger.domain.repository.unit_of_work import UnitOfWork


class FakeStore:
    """Committed state shared by every FakeUnitOfWork built on it."""

    def __init__(
        self,
        products: list[Product] | None = None,
        records: list[InventoryRecord] | None = None,
        read_delay: float = 0.0,
    ) -> None:
        self.lock = threading.Lock()
        self.products: dict[str, Product] = {p.id: p for p in products or []}
        self.inventory: dict[StockKey, InventoryRecord] = {
            r.key: replace(r) for r in records or []
        }
        self.sales: dict[str, SaleEvent] = {}
        self.movements: list[StockMovement] = []
        # Sleep before each inventory read, to widen race windows
        self.read_delay = read_delay
        self.commits = 0

    def stock(self, product_id: str, warehouse_id: str) -> int:
        return self.inventory[StockKey(product_id, warehouse_id)].stock


class FakeProductRepository(ProductRepository):

    def __init__(self, store: FakeStore) -> None:
        self._store = store
        self.staged: dict[str, Product] = {}

    def get_by_id(self, product_id: str) -> Product | None:
        return self.staged.get(product_id) or self._store.products.get(product_id)

    def get_by_name(self, name: str) -> Product | None:
        for p in self.list_all():
            if p.name.lower() == name.lower():
                return p
        return None

    def list_all(self) -> list[Product]:
        merged = dict(self._store.products)
        merged.update(self.staged)
        return list(merged.values())

    def save(self, product: Product) -> None:
        self.staged[product.id] = product


class FakeInventoryRepository(InventoryRepository):

    def __init__(self, store: FakeStore) -> None:
        self._store = store
        self.staged: dict[StockKey, InventoryRecord] = {}
        self.staged_movements: list[StockMovement] = []

    def get(self, key: StockKey) -> InventoryRecord | None:
        if key in self.staged:
            return replace(self.staged[key])
        if self._store.read_delay:
            time.sleep(self._store.read_delay)
        with self._store.lock:
            record = self._store.inventory.get(key)
        return replace(record) if record is not None else None

    def list_all(self) -> list[InventoryRecord]:
        with self._store.lock:
            merged = dict(self._store.inventory)
        merged.update(self.staged)
        return [replace(r) for r in merged.values()]

    def save(self, record: InventoryRecord) -> None:
        self.staged[record.key] = replace(record)

    def add_movement(self, movement: StockMovement) -> None:
        self.staged_movements.append(movement)

    def movements_for(self, key: StockKey) -> list[StockMovement]:
        with self._store.lock:
            committed = list(self._store.movements)
        return [m for m in committed + self.staged_movements if m.key == key]


class FakeSaleRepository(SaleRepository):

    def __init__(self, store: FakeStore) -> None:
        super().__init__()
        self._store = store
        self.staged: list[SaleEvent] = []

    def _insert(self, sale: SaleEvent) -> None:
        self.staged.append(sale)

    def get_by_id(self, sale_id: str) -> SaleEvent | None:
        for sale in self.staged:
            if sale.id == sale_id:
                return sale
        return self._store.sales.get(sale_id)

    def list_for(self, key: StockKey) -> list[SaleEvent]:
        with self._store.lock:
            committed = list(self._store.sales.values())
        return [s for s in committed + self.staged if s.key == key]


class FakeUnitOfWork(UnitOfWork):

    storage_errors = (OSError,)

    def __init__(self, store: FakeStore, commit_error: Exception | None = None) -> None:
        super().__init__()
        self._store = store
        self._commit_error = commit_error

    def _open(self) -> None:
        self.products = FakeProductRepository(self._store)
        self.inventory = FakeInventoryRepository(self._store)
        self.sales = FakeSaleRepository(self._store)

    def commit(self) -> None:
        if self._commit_error is not None:
            raise self._commit_error
        with self._store.lock:
            self._store.products.update(self.products.staged)
            self._store.inventory.update(self.inventory.staged)
            self._store.movements.extend(self.inventory.staged_movements)
            for sale in self.sales.staged:
                self._store.sales[sale.id] = sale
            self._store.commits += 1
        self.rollback()

    def rollback(self) -> None:
        self.products.staged.clear()
        self.inventory.staged.clear()
        self.inventory.staged_movements.clear()
        self.sales.staged.clear()


def fake_uow_factory(store: FakeStore, **kwargs):
    return lambda: FakeUnitOfWork(store, **kwargs)
