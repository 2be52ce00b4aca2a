"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.

Units of work handed out from here always come from the ledger, so a
sale added through any of them also moves stock.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Callable

from stockledger.domain.repository.unit_of_work import UnitOfWork
from stockledger.domain.service.inventory_ledger import InventoryLedger
from stockledger.infrastructure.config import get_settings
from stockledger.infrastructure.persistence.json_document_store import (
    JsonDocumentStore,
)
from stockledger.infrastructure.persistence.json_unit_of_work import JsonUnitOfWork
from stockledger.infrastructure.persistence.sql_unit_of_work import (
    SqlAlchemyUnitOfWork,
    create_session_factory,
)


@lru_cache
def _json_store(file_path: Path, lock_timeout: float) -> JsonDocumentStore:
    # One store per file so every unit of work shares its write guard
    return JsonDocumentStore(file_path, lock_timeout=lock_timeout)


@lru_cache
def _session_factory(database_url: str):
    if database_url.startswith("sqlite:///"):
        Path(database_url.removeprefix("sqlite:///")).parent.mkdir(
            parents=True, exist_ok=True
        )
    return create_session_factory(database_url)


def _backend_factory() -> Callable[[], UnitOfWork]:
    settings = get_settings()
    if settings.backend == "sql":
        session_factory = _session_factory(settings.database_url)
        return lambda: SqlAlchemyUnitOfWork(session_factory)

    store = _json_store(settings.json_path.resolve(), settings.lock_timeout)
    return lambda: JsonUnitOfWork(store)


@lru_cache
def ledger() -> InventoryLedger:
    settings = get_settings()
    return InventoryLedger(
        uow_factory=_backend_factory(),
        policy=settings.stock_policy,
        lock_timeout=settings.lock_timeout,
        max_retries=settings.max_retries,
        retry_backoff=settings.retry_backoff,
    )


def unit_of_work_factory() -> Callable[[], UnitOfWork]:
    return ledger().unit_of_work


def reset() -> None:
    """Forget cached settings and wiring (settings changed, e.g. in tests)."""
    get_settings.cache_clear()
    ledger.cache_clear()
    _json_store.cache_clear()
    _session_factory.cache_clear()
