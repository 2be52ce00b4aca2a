"""Application service: Add Product use case."""

from __future__ import annotations

from typing import Callable

from stockledger.domain.exceptions import ValidationError
from stockledger.domain.model.product import Product
from stockledger.domain.model.value_objects import Money
from stockledger.domain.repository.unit_of_work import UnitOfWork


class AddProductHandler:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def handle(
        self,
        name: str,
        price: str,
        cogs: str | None = None,
        category_id: str | None = None,
    ) -> Product:
        """Add a new product to the catalog."""
        if not name or not name.strip():
            raise ValidationError("Product name is required")

        with self._uow_factory() as uow:
            existing = uow.products.get_by_name(name.strip())
            if existing is not None:
                raise ValidationError(f"Product '{name}' already exists")

            # Auto-assign ID based on existing products
            numeric_ids = [
                int(p.id) for p in uow.products.list_all() if p.id.isdigit()
            ]
            next_id = str(max(numeric_ids) + 1) if numeric_ids else "1"

            product = Product(
                id=next_id,
                name=name.strip(),
                price=Money.of(price),
                cogs=Money.of(cogs) if cogs is not None else None,
                category_id=category_id,
            )
            uow.products.save(product)
            uow.commit()

        return product
