"""Application service: Show Inventory use case (query)."""

from __future__ import annotations

from typing import Callable

from stockledger.application.dto import InventoryLineDTO
from stockledger.domain.repository.unit_of_work import UnitOfWork


class ShowInventoryHandler:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def handle(self, low_stock_threshold: int | None = None) -> list[InventoryLineDTO]:
        """List inventory records, sorted by product then warehouse.

        With ``low_stock_threshold`` only records at or below it are
        returned, which is what purchasing looks at before restocking.
        """
        with self._uow_factory() as uow:
            records = uow.inventory.list_all()
            names = {p.id: p.name for p in uow.products.list_all()}

        if low_stock_threshold is not None:
            records = [r for r in records if r.stock <= low_stock_threshold]

        return [
            InventoryLineDTO(
                product_id=r.product_id,
                product_name=names.get(r.product_id, "?"),
                warehouse_id=r.warehouse_id,
                stock=r.stock,
                last_stock_date=r.last_stock_date.isoformat() if r.last_stock_date else "",
                backordered=r.is_backordered,
            )
            for r in sorted(records, key=lambda r: r.key)
        ]
