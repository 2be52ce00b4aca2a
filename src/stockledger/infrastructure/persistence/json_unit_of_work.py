"""Unit of work over the JSON document store."""

from __future__ import annotations

import json

from stockledger.domain.repository.unit_of_work import UnitOfWork
from stockledger.infrastructure.persistence.json_document_store import (
    ChangeSet,
    JsonDocumentStore,
)
from stockledger.infrastructure.persistence.json_inventory_repository import (
    JsonInventoryRepository,
)
from stockledger.infrastructure.persistence.json_product_repository import (
    JsonProductRepository,
)
from stockledger.infrastructure.persistence.json_sale_repository import (
    JsonSaleRepository,
)


class JsonUnitOfWork(UnitOfWork):
    """Stages changes in memory and merges them into the file on commit."""

    storage_errors = (OSError, json.JSONDecodeError)

    def __init__(self, store: JsonDocumentStore) -> None:
        super().__init__()
        self._store = store
        self._changes = ChangeSet()

    def _open(self) -> None:
        self._changes = ChangeSet()
        self.products = JsonProductRepository(self._store, self._changes)
        self.inventory = JsonInventoryRepository(self._store, self._changes)
        self.sales = JsonSaleRepository(self._store, self._changes)

    def commit(self) -> None:
        self._store.update(self._changes.apply_to)
        self._changes.clear()

    def rollback(self) -> None:
        self._changes.clear()
