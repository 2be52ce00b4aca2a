"""JSON-file-backed implementation of ProductRepository."""

from __future__ import annotations

from decimal import Decimal

from stockledger.domain.model.product import Product
from stockledger.domain.model.value_objects import Money
from stockledger.domain.repository.product_repository import ProductRepository
from stockledger.infrastructure.persistence.json_document_store import (
    ChangeSet,
    JsonDocumentStore,
)


class JsonProductRepository(ProductRepository):

    def __init__(self, store: JsonDocumentStore, changes: ChangeSet) -> None:
        self._store = store
        self._changes = changes

    # --- ProductRepository interface ------------------------------------------

    def get_by_id(self, product_id: str) -> Product | None:
        return self._load().get(product_id)

    def get_by_name(self, name: str) -> Product | None:
        for product in self._load().values():
            if product.name.lower() == name.lower():
                return product
        return None

    def list_all(self) -> list[Product]:
        return list(self._load().values())

    def save(self, product: Product) -> None:
        self._changes.products[product.id] = self._to_raw(product)

    # --- Serialization helpers ------------------------------------------------

    def _load(self) -> dict[str, Product]:
        raw_products = {raw["id"]: raw for raw in self._store.read()["products"]}
        raw_products.update(self._changes.products)
        return {pid: self._to_domain(raw) for pid, raw in raw_products.items()}

    @staticmethod
    def _to_raw(product: Product) -> dict:
        return {
            "id": product.id,
            "name": product.name,
            "price": str(product.price.amount),
            "cogs": str(product.cogs.amount) if product.cogs else None,
            "currency": product.price.currency,
            "category_id": product.category_id,
        }

    @staticmethod
    def _to_domain(raw: dict) -> Product:
        currency = raw.get("currency", "USD")
        cogs = raw.get("cogs")
        return Product(
            id=raw["id"],
            name=raw["name"],
            price=Money(Decimal(raw["price"]), currency),
            cogs=Money(Decimal(cogs), currency) if cogs is not None else None,
            category_id=raw.get("category_id"),
        )
