"""Domain service: Inventory Ledger.

The ledger is the only writer of stock counters. It applies sales as
decrements, under a per-key lock held until the enclosing unit of work
commits, so every decision is taken against the latest committed value.

Recording a sale and decrementing stock cannot be separated: the ledger
subscribes to every unit of work it hands out, and a sale added to such
a unit is applied to its inventory record before it is stored. Both
changes commit together or not at all.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable, TypeVar

import structlog

from stockledger.domain.exceptions import (
    ConcurrencyTimeoutError,
    InsufficientStockError,
    UnknownProductError,
)
from stockledger.domain.model.inventory import InventoryRecord, StockPolicy
from stockledger.domain.model.sale import SaleEvent
from stockledger.domain.model.value_objects import Quantity, StockKey
from stockledger.domain.repository.unit_of_work import UnitOfWork
from stockledger.domain.service.key_locks import KeyedLocks

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InventoryLedger:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        policy: StockPolicy = StockPolicy.STRICT,
        lock_timeout: float = 5.0,
        max_retries: int = 3,
        retry_backoff: float = 0.05,
        clock: Callable[[], datetime] = _utcnow,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self.policy = policy
        self._lock_timeout = lock_timeout
        self._max_retries = max_retries
        self._retry_backoff = retry_backoff
        self._clock = clock
        self._locks = locks or KeyedLocks()

    # --- Units of work --------------------------------------------------------

    def unit_of_work(self) -> UnitOfWork:
        """A unit of work in which every added sale also decrements stock."""
        uow = self._uow_factory()
        uow.subscribe(self._on_sale_recorded)
        return uow

    def run(self, work: Callable[[UnitOfWork], T]) -> T:
        """Run ``work`` in a fresh unit of work and commit it.

        A lock timeout, or a commit refused because another writer changed
        a counter first, aborts the whole unit. It is then retried with
        exponential backoff up to ``max_retries`` times.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                with self.unit_of_work() as uow:
                    result = work(uow)
                    uow.commit()
                    return result
            except ConcurrencyTimeoutError as exc:
                if attempt > self._max_retries:
                    logger.warning("lock_retries_exhausted", attempts=attempt)
                    raise
                delay = self._retry_backoff * 2 ** (attempt - 1)
                logger.info(
                    "lock_retry", attempt=attempt, delay=delay, reason=type(exc).__name__
                )
                time.sleep(delay)

    # --- Public contract ------------------------------------------------------

    def apply_sale(self, product_id: str, warehouse_id: str, quantity: int) -> int:
        """Decrement stock for a key and return the new level."""
        key = StockKey(product_id, warehouse_id)
        Quantity(quantity)
        return self.run(lambda uow: self.deduct(uow, key, quantity))

    def current_stock(self, product_id: str, warehouse_id: str) -> int:
        """Read the committed stock for a key. Takes no lock."""
        key = StockKey(product_id, warehouse_id)
        with self._uow_factory() as uow:
            record = uow.inventory.get(key)
        if record is None:
            raise UnknownProductError(f"No inventory record for {key}")
        return record.stock

    # --- Operations inside a unit of work -------------------------------------

    def deduct(
        self,
        uow: UnitOfWork,
        key: StockKey,
        quantity: int,
        sale_id: str | None = None,
    ) -> int:
        qty = Quantity(quantity).value
        record = self._locked_record(uow, key)
        if record is None:
            logger.info("sale_rejected", key=str(key), reason="unknown_product")
            raise UnknownProductError(f"No inventory record for {key}")

        try:
            movement = record.deduct(qty, self.policy, self._clock(), sale_id=sale_id)
        except InsufficientStockError:
            logger.info(
                "sale_rejected",
                key=str(key),
                reason="insufficient_stock",
                requested=qty,
                available=record.stock,
            )
            raise

        uow.inventory.save(record)
        uow.inventory.add_movement(movement)
        logger.debug(
            "stock_deducted",
            key=str(key),
            quantity=qty,
            stock=record.stock,
            backordered=record.is_backordered,
        )
        return record.stock

    def set_level(self, uow: UnitOfWork, key: StockKey, quantity: int) -> int:
        """Set the counter for a key, opening the record if needed."""
        record = self._locked_record(uow, key)
        if record is None:
            record, movement = InventoryRecord.open(key, quantity, self._clock())
        else:
            movement = record.set_level(quantity, self._clock())
        uow.inventory.save(record)
        uow.inventory.add_movement(movement)
        logger.info("stock_level_set", key=str(key), stock=record.stock)
        return record.stock

    def receive(self, uow: UnitOfWork, key: StockKey, quantity: int) -> int:
        """Add restocked units to an existing record."""
        qty = Quantity(quantity).value
        record = self._locked_record(uow, key)
        if record is None:
            raise UnknownProductError(f"No inventory record for {key}")
        movement = record.receive(qty, self._clock())
        uow.inventory.save(record)
        uow.inventory.add_movement(movement)
        logger.info("stock_received", key=str(key), quantity=qty, stock=record.stock)
        return record.stock

    # --- Internal helpers -----------------------------------------------------

    def _on_sale_recorded(self, uow: UnitOfWork, sale: SaleEvent) -> None:
        self.deduct(uow, sale.key, sale.quantity.value, sale_id=sale.id)

    def _locked_record(self, uow: UnitOfWork, key: StockKey) -> InventoryRecord | None:
        if not uow.holds(key):
            uow.hold(key, self._locks.acquire(key, self._lock_timeout))
        return uow.inventory.get_for_update(key)
