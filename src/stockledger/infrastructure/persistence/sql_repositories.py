"""SQLAlchemy-backed repositories.

Each repository works inside the Session of the unit of work that
created it and never commits on its own.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from stockledger.domain.exceptions import ConcurrentUpdateError
from stockledger.domain.model.inventory import (
    InventoryRecord,
    MovementKind,
    StockMovement,
)
from stockledger.domain.model.product import Product
from stockledger.domain.model.sale import SaleEvent
from stockledger.domain.model.value_objects import Money, Quantity, StockKey
from stockledger.domain.repository.inventory_repository import InventoryRepository
from stockledger.domain.repository.product_repository import ProductRepository
from stockledger.domain.repository.sale_repository import SaleRepository
from stockledger.infrastructure.persistence.sql_models import (
    InventoryRow,
    OrderItemRow,
    ProductRow,
    StockMovementRow,
)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlProductRepository(ProductRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_id(self, product_id: str) -> Product | None:
        row = self._session.get(ProductRow, product_id)
        return self._to_domain(row) if row is not None else None

    def get_by_name(self, name: str) -> Product | None:
        stmt = select(ProductRow).where(
            func.lower(ProductRow.product_name) == name.lower()
        )
        row = self._session.scalars(stmt).first()
        return self._to_domain(row) if row is not None else None

    def list_all(self) -> list[Product]:
        rows = self._session.scalars(select(ProductRow).order_by(ProductRow.product_id))
        return [self._to_domain(row) for row in rows]

    def save(self, product: Product) -> None:
        self._session.merge(
            ProductRow(
                product_id=product.id,
                product_name=product.name,
                price=product.price.amount,
                cogs=product.cogs.amount if product.cogs else None,
                currency=product.price.currency,
                category_id=product.category_id,
            )
        )

    @staticmethod
    def _to_domain(row: ProductRow) -> Product:
        return Product(
            id=row.product_id,
            name=row.product_name,
            price=Money(row.price, row.currency),
            cogs=Money(row.cogs, row.currency) if row.cogs is not None else None,
            category_id=row.category_id,
        )


class SqlInventoryRepository(InventoryRepository):
    """Inventory rows, written back only if they still hold the level read.

    ``FOR UPDATE`` serializes writers where the engine supports row locks.
    SQLite ignores it, so ``save`` also conditions its UPDATE on the stock
    read by ``get_for_update`` and raises ConcurrentUpdateError when another
    connection got there first.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._read_levels: dict[StockKey, int] = {}

    def get(self, key: StockKey) -> InventoryRecord | None:
        row = self._session.get(InventoryRow, (key.product_id, key.warehouse_id))
        return self._to_domain(row) if row is not None else None

    def get_for_update(self, key: StockKey) -> InventoryRecord | None:
        stmt = (
            select(InventoryRow)
            .where(
                InventoryRow.product_id == key.product_id,
                InventoryRow.warehouse_id == key.warehouse_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = self._session.scalars(stmt).first()
        if row is None:
            self._read_levels.pop(key, None)
            return None
        self._read_levels[key] = row.stock
        return self._to_domain(row)

    def list_all(self) -> list[InventoryRecord]:
        rows = self._session.scalars(select(InventoryRow))
        return [self._to_domain(row) for row in rows]

    def save(self, record: InventoryRecord) -> None:
        key = record.key
        if key in self._read_levels:
            expected = self._read_levels[key]
            result = self._session.execute(
                update(InventoryRow)
                .where(
                    InventoryRow.product_id == key.product_id,
                    InventoryRow.warehouse_id == key.warehouse_id,
                    InventoryRow.stock == expected,
                )
                .values(stock=record.stock, last_stock_date=record.last_stock_date)
                .execution_options(synchronize_session="evaluate")
            )
            if result.rowcount != 1:
                raise ConcurrentUpdateError(key, expected, self._stock_now(key))
            self._read_levels[key] = record.stock
            return

        row = self._session.get(InventoryRow, (record.product_id, record.warehouse_id))
        if row is None:
            row = InventoryRow(product_id=record.product_id, warehouse_id=record.warehouse_id)
            self._session.add(row)
        row.stock = record.stock
        row.last_stock_date = record.last_stock_date
        self._session.flush()

    def add_movement(self, movement: StockMovement) -> None:
        self._session.add(
            StockMovementRow(
                product_id=movement.product_id,
                warehouse_id=movement.warehouse_id,
                kind=movement.kind.value,
                quantity_change=movement.quantity_change,
                previous_level=movement.previous_level,
                new_level=movement.new_level,
                occurred_at=movement.occurred_at,
                sale_id=movement.sale_id,
            )
        )
        self._session.flush()

    def movements_for(self, key: StockKey) -> list[StockMovement]:
        stmt = (
            select(StockMovementRow)
            .where(
                StockMovementRow.product_id == key.product_id,
                StockMovementRow.warehouse_id == key.warehouse_id,
            )
            .order_by(StockMovementRow.id)
        )
        return [
            StockMovement(
                product_id=row.product_id,
                warehouse_id=row.warehouse_id,
                kind=MovementKind(row.kind),
                quantity_change=row.quantity_change,
                previous_level=row.previous_level,
                new_level=row.new_level,
                occurred_at=_aware(row.occurred_at),
                sale_id=row.sale_id,
            )
            for row in self._session.scalars(stmt)
        ]

    def _stock_now(self, key: StockKey) -> int | None:
        stmt = select(InventoryRow.stock).where(
            InventoryRow.product_id == key.product_id,
            InventoryRow.warehouse_id == key.warehouse_id,
        )
        return self._session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _to_domain(row: InventoryRow) -> InventoryRecord:
        return InventoryRecord(
            product_id=row.product_id,
            warehouse_id=row.warehouse_id,
            stock=row.stock,
            last_stock_date=_aware(row.last_stock_date),
        )


class SqlSaleRepository(SaleRepository):

    def __init__(self, session: Session) -> None:
        super().__init__()
        self._session = session

    def _insert(self, sale: SaleEvent) -> None:
        self._session.add(
            OrderItemRow(
                order_item_id=sale.id,
                order_id=sale.order_id,
                product_id=sale.product_id,
                warehouse_id=sale.warehouse_id,
                quantity=sale.quantity.value,
                price_per_unit=sale.unit_price.amount,
                currency=sale.unit_price.currency,
                recorded_at=sale.recorded_at,
            )
        )
        self._session.flush()

    def get_by_id(self, sale_id: str) -> SaleEvent | None:
        row = self._session.get(OrderItemRow, sale_id)
        return self._to_domain(row) if row is not None else None

    def list_for(self, key: StockKey) -> list[SaleEvent]:
        stmt = (
            select(OrderItemRow)
            .where(
                OrderItemRow.product_id == key.product_id,
                OrderItemRow.warehouse_id == key.warehouse_id,
            )
            .order_by(OrderItemRow.recorded_at)
        )
        return [self._to_domain(row) for row in self._session.scalars(stmt)]

    @staticmethod
    def _to_domain(row: OrderItemRow) -> SaleEvent:
        return SaleEvent(
            id=row.order_item_id,
            order_id=row.order_id,
            product_id=row.product_id,
            warehouse_id=row.warehouse_id,
            quantity=Quantity(row.quantity),
            unit_price=Money(row.price_per_unit, row.currency),
            recorded_at=_aware(row.recorded_at),
        )
