"""Application service: Record Sale use case.

This is the order-capture entry point. The sale is stored through a
unit of work handed out by the ledger, so storing it also decrements
the stock it draws from. A rejected decrement rejects the sale.
"""

from __future__ import annotations

from datetime import datetime

import structlog

from stockledger.application.dto import SaleReceiptDTO
from stockledger.domain.exceptions import UnknownProductError
from stockledger.domain.model.sale import SaleEvent
from stockledger.domain.model.value_objects import Money
from stockledger.domain.repository.unit_of_work import UnitOfWork
from stockledger.domain.service.inventory_ledger import InventoryLedger

logger = structlog.get_logger(__name__)


class RecordSaleHandler:

    def __init__(self, ledger: InventoryLedger) -> None:
        self._ledger = ledger

    def handle(
        self,
        order_id: str,
        product_id: str,
        warehouse_id: str,
        quantity: int,
        unit_price: str | None = None,
        recorded_at: datetime | None = None,
    ) -> SaleReceiptDTO:
        """Record one order line.

        Args:
            unit_price: Price charged per unit. Defaults to the catalog price.
            recorded_at: When order capture took the sale. Defaults to now.
        """

        def work(uow: UnitOfWork) -> SaleReceiptDTO:
            product = uow.products.get_by_id(product_id)
            if product is None:
                raise UnknownProductError(f"Product not found: '{product_id}'")

            price = (
                Money.of(unit_price, product.price.currency)
                if unit_price is not None
                else product.price
            )
            sale = SaleEvent.create(
                order_id=order_id,
                product_id=product_id,
                warehouse_id=warehouse_id,
                quantity=quantity,
                unit_price=price,
                recorded_at=recorded_at,
            )
            uow.sales.add(sale)

            record = uow.inventory.get(sale.key)
            return SaleReceiptDTO(
                sale_id=sale.id,
                order_id=sale.order_id,
                product_id=sale.product_id,
                warehouse_id=sale.warehouse_id,
                quantity=sale.quantity.value,
                unit_price=str(sale.unit_price),
                total_sale=str(sale.total_sale),
                stock_after=record.stock,
            )

        receipt = self._ledger.run(work)
        logger.info(
            "sale_recorded",
            sale_id=receipt.sale_id,
            order_id=receipt.order_id,
            product_id=receipt.product_id,
            warehouse_id=receipt.warehouse_id,
            quantity=receipt.quantity,
            stock_after=receipt.stock_after,
        )
        return receipt
