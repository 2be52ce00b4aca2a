"""JSON-file-backed implementation of SaleRepository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from stockledger.domain.model.sale import SaleEvent
from stockledger.domain.model.value_objects import Money, Quantity, StockKey
from stockledger.domain.repository.sale_repository import SaleRepository
from stockledger.infrastructure.persistence.json_document_store import (
    ChangeSet,
    JsonDocumentStore,
)


class JsonSaleRepository(SaleRepository):

    def __init__(self, store: JsonDocumentStore, changes: ChangeSet) -> None:
        super().__init__()
        self._store = store
        self._changes = changes

    # --- SaleRepository interface ---------------------------------------------

    def _insert(self, sale: SaleEvent) -> None:
        self._changes.sales.append(self._to_raw(sale))

    def get_by_id(self, sale_id: str) -> SaleEvent | None:
        for raw in self._all_raw():
            if raw["id"] == sale_id:
                return self._to_domain(raw)
        return None

    def list_for(self, key: StockKey) -> list[SaleEvent]:
        return [
            self._to_domain(raw)
            for raw in self._all_raw()
            if raw["product_id"] == key.product_id
            and raw["warehouse_id"] == key.warehouse_id
        ]

    # --- Serialization --------------------------------------------------------

    def _all_raw(self) -> list[dict]:
        return self._store.read()["sales"] + self._changes.sales

    @staticmethod
    def _to_raw(sale: SaleEvent) -> dict:
        return {
            "id": sale.id,
            "order_id": sale.order_id,
            "product_id": sale.product_id,
            "warehouse_id": sale.warehouse_id,
            "quantity": sale.quantity.value,
            "price_per_unit": str(sale.unit_price.amount),
            "currency": sale.unit_price.currency,
            "total_sale": str(sale.total_sale.amount),
            "recorded_at": sale.recorded_at.isoformat(),
        }

    @staticmethod
    def _to_domain(raw: dict) -> SaleEvent:
        return SaleEvent(
            id=raw["id"],
            order_id=raw["order_id"],
            product_id=raw["product_id"],
            warehouse_id=raw["warehouse_id"],
            quantity=Quantity(raw["quantity"]),
            unit_price=Money(Decimal(raw["price_per_unit"]), raw.get("currency", "USD")),
            recorded_at=datetime.fromisoformat(raw["recorded_at"]),
        )
