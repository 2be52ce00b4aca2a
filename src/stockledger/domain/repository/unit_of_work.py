"""Abstract Unit of Work.

A unit of work groups the repositories that take part in one atomic
change. Nothing it stages is visible to anyone else until ``commit()``;
leaving the ``with`` block without committing rolls everything back.

It also owns the per-key stock locks taken while it runs. They are
released only when the block exits, i.e. after the commit, so no other
unit can read a counter this one is about to overwrite.
"""

from __future__ import annotations

import functools
from abc import ABC, abstractmethod
from contextlib import ExitStack
from typing import Callable, ContextManager

import structlog

from stockledger.domain.exceptions import StorageFailureError
from stockledger.domain.model.sale import SaleEvent
from stockledger.domain.model.value_objects import StockKey
from stockledger.domain.repository.inventory_repository import InventoryRepository
from stockledger.domain.repository.product_repository import ProductRepository
from stockledger.domain.repository.sale_repository import SaleRepository

logger = structlog.get_logger(__name__)


class UnitOfWork(ABC):

    products: ProductRepository
    inventory: InventoryRepository
    sales: SaleRepository

    # Backend exceptions that surface as StorageFailureError.
    storage_errors: tuple[type[BaseException], ...] = ()

    def __init__(self) -> None:
        self._sale_listeners: list[Callable[[UnitOfWork, SaleEvent], None]] = []
        self._held_locks: ExitStack | None = None
        self._locked_keys: set[StockKey] = set()

    def subscribe(self, listener: Callable[[UnitOfWork, SaleEvent], None]) -> None:
        """Run ``listener(uow, sale)`` for every sale added in this unit."""
        self._sale_listeners.append(listener)

    # --- Context manager ------------------------------------------------------

    def __enter__(self) -> UnitOfWork:
        self._held_locks = ExitStack()
        self._locked_keys = set()
        try:
            self._open()
        except self.storage_errors as exc:
            self._release_locks()
            raise StorageFailureError(f"Could not open storage: {exc}") from exc
        for listener in self._sale_listeners:
            self.sales.on_add(functools.partial(listener, self))
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.rollback()
        finally:
            self._close()
            self._release_locks()

        if exc is not None and isinstance(exc, self.storage_errors):
            logger.error("storage_failure", error=str(exc), backend=type(self).__name__)
            raise StorageFailureError(f"Storage backend failed: {exc}") from exc

    # --- Locks ----------------------------------------------------------------

    def holds(self, key: StockKey) -> bool:
        return key in self._locked_keys

    def hold(self, key: StockKey, lock: ContextManager) -> None:
        """Enter ``lock`` and keep it until this unit of work ends."""
        if self._held_locks is None:
            raise RuntimeError("Unit of work is not active")
        self._held_locks.enter_context(lock)
        self._locked_keys.add(key)

    def _release_locks(self) -> None:
        if self._held_locks is not None:
            self._held_locks.close()
        self._held_locks = None
        self._locked_keys = set()

    # --- Backend hooks --------------------------------------------------------

    @abstractmethod
    def _open(self) -> None:
        """Start the unit and create the repositories."""

    @abstractmethod
    def commit(self) -> None:
        """Make every staged change durable at once."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard staged changes. Must be a no-op after commit."""

    def _close(self) -> None:
        """Release backend resources."""
