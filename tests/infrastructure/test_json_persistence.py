"""Tests for the JSON document store and its unit of work."""

import json
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest

from stockledger.application.record_sale import RecordSaleHandler
from stockledger.application.stock_inventory import StockInventoryHandler
from stockledger.domain.exceptions import (
    ConcurrentUpdateError,
    InsufficientStockError,
    StorageFailureError,
)
from stockledger.domain.model.inventory import StockPolicy
from stockledger.domain.model.product import Product
from stockledger.domain.model.value_objects import Money, StockKey
from stockledger.domain.service.inventory_ledger import InventoryLedger
from stockledger.infrastructure.persistence.json_document_store import JsonDocumentStore
from stockledger.infrastructure.persistence.json_unit_of_work import JsonUnitOfWork


@pytest.fixture
def store(tmp_path):
    return JsonDocumentStore(tmp_path / "ledger.json")


@pytest.fixture
def ledger(store):
    ledger = InventoryLedger(lambda: JsonUnitOfWork(store))
    with JsonUnitOfWork(store) as uow:
        uow.products.save(
            Product(id="1", name="Widget", price=Money.of("15.00"), cogs=Money.of("6"))
        )
        uow.commit()
    StockInventoryHandler(ledger).handle("1", "W1", 10)
    return ledger


def test_new_file_has_every_section(store):
    document = json.loads(store.file_path.read_text(encoding="utf-8"))
    assert document == {"products": [], "inventory": [], "sales": [], "movements": []}


def test_product_round_trip(store, ledger):
    with JsonUnitOfWork(store) as uow:
        product = uow.products.get_by_name("WIDGET")
    assert product.cogs == Money.of("6")
    assert product.price.amount == Money.of("15.00").amount


def test_sale_and_decrement_are_written_together(store, ledger):
    receipt = RecordSaleHandler(ledger).handle("O-1", "1", "W1", 3)

    document = store.read()
    [sale] = document["sales"]
    assert sale["id"] == receipt.sale_id
    assert sale["total_sale"] == "45.00"
    [record] = document["inventory"]
    assert record["stock"] == 7
    assert [m["kind"] for m in document["movements"]] == ["stocked", "sale"]


def test_rejected_sale_writes_nothing(store, ledger):
    before = store.file_path.read_text(encoding="utf-8")
    with pytest.raises(InsufficientStockError):
        RecordSaleHandler(ledger).handle("O-1", "1", "W1", 11)
    assert store.file_path.read_text(encoding="utf-8") == before


def test_uncommitted_changes_are_invisible(store, ledger):
    with JsonUnitOfWork(store) as uow:
        ledger.deduct(uow, StockKey("1", "W1"), 4)
        assert uow.inventory.get(StockKey("1", "W1")).stock == 6
        with JsonUnitOfWork(store) as other:
            assert other.inventory.get(StockKey("1", "W1")).stock == 10
    assert ledger.current_stock("1", "W1") == 10


def test_history_and_sales_read_back(store, ledger):
    receipt = RecordSaleHandler(ledger).handle("O-1", "1", "W1", 2)
    with JsonUnitOfWork(store) as uow:
        [sale] = uow.sales.list_for(StockKey("1", "W1"))
        history = uow.inventory.movements_for(StockKey("1", "W1"))
    assert sale.id == receipt.sale_id
    assert sale.quantity.value == 2
    assert [m.new_level for m in history] == [10, 8]


def test_concurrent_sales_on_one_file(store, ledger):
    with ThreadPoolExecutor(max_workers=5) as pool:
        list(pool.map(lambda i: ledger.apply_sale("1", "W1", 1), range(10)))
    assert ledger.current_stock("1", "W1") == 0
    assert len(store.read()["movements"]) == 11


def test_corrupt_file_is_a_storage_failure(store, ledger):
    store.file_path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageFailureError):
        ledger.current_stock("1", "W1")


def test_no_temp_files_left_behind(store, ledger):
    RecordSaleHandler(ledger).handle("O-1", "1", "W1", 1)
    assert list(store.file_path.parent.glob("*.tmp")) == []


def test_stale_write_from_another_store_is_refused(store, ledger):
    # a second store on the same file stands in for another process
    other = InventoryLedger(lambda: JsonUnitOfWork(JsonDocumentStore(store.file_path)))
    key = StockKey("1", "W1")

    with JsonUnitOfWork(store) as uow:
        record = uow.inventory.get_for_update(key)
        other.apply_sale("1", "W1", 2)
        movement = record.deduct(1, StockPolicy.STRICT, datetime.now(timezone.utc))
        uow.inventory.save(record)
        uow.inventory.add_movement(movement)
        with pytest.raises(ConcurrentUpdateError, match="changed from 10 to 8"):
            uow.commit()

    assert ledger.current_stock("1", "W1") == 8
    assert [m["new_level"] for m in store.read()["movements"]] == [10, 8]


def test_two_stores_on_one_file_lose_no_sales(store, ledger):
    with ledger.unit_of_work() as uow:
        ledger.set_level(uow, StockKey("1", "W1"), 40)
        uow.commit()
    first = InventoryLedger(
        lambda: JsonUnitOfWork(store), max_retries=30, retry_backoff=0.0001
    )
    other_store = JsonDocumentStore(store.file_path)
    second = InventoryLedger(
        lambda: JsonUnitOfWork(other_store), max_retries=30, retry_backoff=0.0001
    )

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(lambda led: led.apply_sale("1", "W1", 1), [first, second] * 20))

    assert first.current_stock("1", "W1") == 0
    sales = [m for m in store.read()["movements"] if m["kind"] == "sale"]
    assert sorted(m["new_level"] for m in sales) == list(range(40))
