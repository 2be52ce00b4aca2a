"""JSON-file-backed implementation of InventoryRepository."""

from __future__ import annotations

from datetime import datetime

from stockledger.domain.model.inventory import (
    InventoryRecord,
    MovementKind,
    StockMovement,
)
from stockledger.domain.model.value_objects import StockKey
from stockledger.domain.repository.inventory_repository import InventoryRepository
from stockledger.infrastructure.persistence.json_document_store import (
    ChangeSet,
    JsonDocumentStore,
)


class JsonInventoryRepository(InventoryRepository):

    def __init__(self, store: JsonDocumentStore, changes: ChangeSet) -> None:
        self._store = store
        self._changes = changes

    # --- InventoryRepository interface ----------------------------------------

    def get(self, key: StockKey) -> InventoryRecord | None:
        raw = self._changes.inventory.get(key)
        if raw is None:
            raw = self._committed(key)
        return self._to_domain(raw) if raw is not None else None

    def get_for_update(self, key: StockKey) -> InventoryRecord | None:
        if key in self._changes.inventory:
            return self.get(key)
        committed = self._committed(key)
        self._changes.read_levels[key] = (
            committed["stock"] if committed is not None else None
        )
        return self._to_domain(committed) if committed is not None else None

    def list_all(self) -> list[InventoryRecord]:
        records = {
            StockKey(raw["product_id"], raw["warehouse_id"]): raw
            for raw in self._store.read()["inventory"]
        }
        records.update(self._changes.inventory)
        return [self._to_domain(raw) for raw in records.values()]

    def save(self, record: InventoryRecord) -> None:
        self._changes.inventory[record.key] = self._to_raw(record)

    def add_movement(self, movement: StockMovement) -> None:
        self._changes.movements.append(self._movement_to_raw(movement))

    def movements_for(self, key: StockKey) -> list[StockMovement]:
        raws = self._store.read()["movements"] + self._changes.movements
        return [self._movement_to_domain(raw) for raw in raws if _matches(raw, key)]

    def _committed(self, key: StockKey) -> dict | None:
        return next(
            (r for r in self._store.read()["inventory"] if _matches(r, key)), None
        )

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(record: InventoryRecord) -> dict:
        return {
            "product_id": record.product_id,
            "warehouse_id": record.warehouse_id,
            "stock": record.stock,
            "last_stock_date": (
                record.last_stock_date.isoformat() if record.last_stock_date else None
            ),
        }

    @staticmethod
    def _to_domain(raw: dict) -> InventoryRecord:
        last = raw.get("last_stock_date")
        return InventoryRecord(
            product_id=raw["product_id"],
            warehouse_id=raw["warehouse_id"],
            stock=raw["stock"],
            last_stock_date=datetime.fromisoformat(last) if last else None,
        )

    @staticmethod
    def _movement_to_raw(movement: StockMovement) -> dict:
        return {
            "product_id": movement.product_id,
            "warehouse_id": movement.warehouse_id,
            "kind": movement.kind.value,
            "quantity_change": movement.quantity_change,
            "previous_level": movement.previous_level,
            "new_level": movement.new_level,
            "occurred_at": movement.occurred_at.isoformat(),
            "sale_id": movement.sale_id,
        }

    @staticmethod
    def _movement_to_domain(raw: dict) -> StockMovement:
        return StockMovement(
            product_id=raw["product_id"],
            warehouse_id=raw["warehouse_id"],
            kind=MovementKind(raw["kind"]),
            quantity_change=raw["quantity_change"],
            previous_level=raw["previous_level"],
            new_level=raw["new_level"],
            occurred_at=datetime.fromisoformat(raw["occurred_at"]),
            sale_id=raw.get("sale_id"),
        )


def _matches(raw: dict, key: StockKey) -> bool:
    return raw["product_id"] == key.product_id and raw["warehouse_id"] == key.warehouse_id
