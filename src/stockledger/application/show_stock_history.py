"""Application service: Show Stock History use case (query)."""

from __future__ import annotations

from typing import Callable

from stockledger.application.dto import StockMovementDTO
from stockledger.domain.exceptions import UnknownProductError
from stockledger.domain.model.value_objects import StockKey
from stockledger.domain.repository.unit_of_work import UnitOfWork


class ShowStockHistoryHandler:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def handle(self, product_id: str, warehouse_id: str) -> list[StockMovementDTO]:
        key = StockKey(product_id, warehouse_id)
        with self._uow_factory() as uow:
            if uow.inventory.get(key) is None:
                raise UnknownProductError(f"No inventory record for {key}")
            movements = uow.inventory.movements_for(key)

        return [
            StockMovementDTO(
                kind=m.kind.value,
                quantity_change=m.quantity_change,
                previous_level=m.previous_level,
                new_level=m.new_level,
                occurred_at=m.occurred_at.isoformat(),
                sale_id=m.sale_id,
            )
            for m in movements
        ]
