"""Unit tests for the InventoryLedger domain service."""

import itertools
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from stockledger.domain.exceptions import (
    ConcurrencyTimeoutError,
    ConcurrentUpdateError,
    InsufficientStockError,
    InvalidQuantityError,
    UnknownProductError,
)
from stockledger.domain.model.inventory import InventoryRecord, MovementKind, StockPolicy
from stockledger.domain.model.value_objects import StockKey
from stockledger.domain.service.inventory_ledger import InventoryLedger
from stockledger.domain.service.key_locks import KeyedLocks
from tests.fakes import FakeStore, FakeUnitOfWork, fake_uow_factory

KEY = StockKey("1", "W1")


def _ledger(stock: int = 10, policy=StockPolicy.STRICT, **kwargs):
    store = FakeStore(records=[InventoryRecord("1", "W1", stock)], read_delay=kwargs.pop("read_delay", 0.0))
    ledger = InventoryLedger(fake_uow_factory(store), policy=policy, **kwargs)
    return ledger, store


class TestApplySale:

    def test_example_sequence(self):
        ledger, store = _ledger(10)

        assert ledger.apply_sale("1", "W1", 3) == 7
        with pytest.raises(InsufficientStockError):
            ledger.apply_sale("1", "W1", 8)
        assert ledger.current_stock("1", "W1") == 7
        assert ledger.apply_sale("1", "W1", 7) == 0
        assert store.stock("1", "W1") == 0

    @pytest.mark.parametrize("qty", [0, -1, -10])
    def test_non_positive_quantity_never_mutates(self, qty):
        ledger, store = _ledger(10)
        with pytest.raises(InvalidQuantityError):
            ledger.apply_sale("1", "W1", qty)
        assert store.stock("1", "W1") == 10
        assert store.commits == 0

    def test_unknown_key_rejected_without_creating_a_record(self):
        ledger, store = _ledger(10)
        with pytest.raises(UnknownProductError, match="No inventory record for 1@W2"):
            ledger.apply_sale("1", "W2", 1)
        assert StockKey("1", "W2") not in store.inventory

    def test_rejected_unknown_key_leaves_no_lock_behind(self):
        locks = KeyedLocks()
        ledger, _ = _ledger(10, locks=locks)
        for warehouse in ("W2", "W3", "W4"):
            with pytest.raises(UnknownProductError):
                ledger.apply_sale("1", warehouse, 1)
        assert len(locks) == 0

    def test_strict_insufficient_stock_leaves_stock_unchanged(self):
        ledger, store = _ledger(2)
        with pytest.raises(InsufficientStockError):
            ledger.apply_sale("1", "W1", 3)
        assert store.stock("1", "W1") == 2
        assert store.movements == []

    def test_backorder_policy_lets_stock_go_negative(self):
        ledger, store = _ledger(2, policy=StockPolicy.BACKORDER)
        assert ledger.apply_sale("1", "W1", 5) == -3
        assert store.inventory[KEY].is_backordered

    def test_success_stamps_last_stock_date(self):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        ledger, store = _ledger(10, clock=lambda: now)
        ledger.apply_sale("1", "W1", 1)
        assert store.inventory[KEY].last_stock_date == now

    def test_success_appends_sale_movement(self):
        ledger, store = _ledger(10)
        ledger.apply_sale("1", "W1", 4)
        [movement] = store.movements
        assert movement.kind is MovementKind.SALE
        assert (movement.previous_level, movement.new_level) == (10, 6)

    def test_final_stock_independent_of_order(self):
        quantities = [1, 4, 2, 3]
        results = set()
        for order in itertools.permutations(quantities):
            ledger, store = _ledger(20)
            for qty in order:
                ledger.apply_sale("1", "W1", qty)
            results.add(store.stock("1", "W1"))
        assert results == {20 - sum(quantities)}


class TestCurrentStock:

    def test_returns_committed_stock(self):
        ledger, _ = _ledger(12)
        assert ledger.current_stock("1", "W1") == 12

    def test_unknown_key(self):
        ledger, _ = _ledger(12)
        with pytest.raises(UnknownProductError):
            ledger.current_stock("404", "W1")


class TestConcurrency:

    def test_concurrent_unit_sales_lose_no_updates(self):
        n = 40
        ledger, store = _ledger(n, read_delay=0.001)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: ledger.apply_sale("1", "W1", 1), range(n)))

        assert sorted(results) == list(range(n))
        assert store.stock("1", "W1") == 0
        assert len(store.movements) == n

    def test_strict_policy_never_oversells_under_contention(self):
        ledger, store = _ledger(10, read_delay=0.001)
        outcomes = []
        lock = threading.Lock()

        def sell():
            try:
                ledger.apply_sale("1", "W1", 3)
                result = "ok"
            except InsufficientStockError:
                result = "rejected"
            with lock:
                outcomes.append(result)

        with ThreadPoolExecutor(max_workers=6) as pool:
            for _ in range(6):
                pool.submit(sell)

        assert outcomes.count("ok") == 3
        assert outcomes.count("rejected") == 3
        assert store.stock("1", "W1") == 1

    def test_different_keys_do_not_block_each_other(self):
        store = FakeStore(
            records=[InventoryRecord("1", "W1", 5), InventoryRecord("2", "W1", 5)]
        )
        locks = KeyedLocks()
        ledger = InventoryLedger(
            fake_uow_factory(store), lock_timeout=0.05, max_retries=0, locks=locks
        )
        with locks.acquire(KEY, timeout=1):
            assert ledger.apply_sale("2", "W1", 1) == 4


class TestLockTimeout:

    def _hold(self, locks, key, seconds):
        held = threading.Event()

        def holder():
            with locks.acquire(key, timeout=1):
                held.set()
                threading.Event().wait(seconds)

        t = threading.Thread(target=holder)
        t.start()
        held.wait(5)
        return t

    def test_times_out_after_bounded_retries(self):
        locks = KeyedLocks()
        ledger, store = _ledger(
            10, lock_timeout=0.01, max_retries=2, retry_backoff=0, locks=locks
        )
        t = self._hold(locks, KEY, 0.5)
        try:
            with pytest.raises(ConcurrencyTimeoutError):
                ledger.apply_sale("1", "W1", 1)
        finally:
            t.join()
        assert store.stock("1", "W1") == 10

    def test_retry_succeeds_once_lock_is_free(self):
        locks = KeyedLocks()
        ledger, store = _ledger(
            10, lock_timeout=0.02, max_retries=10, retry_backoff=0.01, locks=locks
        )
        t = self._hold(locks, KEY, 0.1)
        try:
            assert ledger.apply_sale("1", "W1", 1) == 9
        finally:
            t.join()

    def test_stale_commit_is_retried(self):
        store = FakeStore(records=[InventoryRecord("1", "W1", 10)])
        conflicts = [ConcurrentUpdateError(KEY, 10, 9)]

        def factory():
            error = conflicts.pop() if conflicts else None
            return FakeUnitOfWork(store, commit_error=error)

        ledger = InventoryLedger(factory, max_retries=1, retry_backoff=0)

        assert ledger.apply_sale("1", "W1", 2) == 8
        assert store.stock("1", "W1") == 8
        assert store.commits == 1


class TestLevels:

    def test_set_level_opens_missing_record(self):
        ledger, store = _ledger(10)
        key = StockKey("1", "W9")
        ledger.run(lambda uow: ledger.set_level(uow, key, 6))
        assert store.inventory[key].stock == 6
        assert store.movements[-1].kind is MovementKind.STOCKED

    def test_receive_adds_to_existing_record(self):
        ledger, store = _ledger(10)
        assert ledger.run(lambda uow: ledger.receive(uow, KEY, 5)) == 15

    def test_receive_unknown_key_rejected(self):
        ledger, _ = _ledger(10)
        with pytest.raises(UnknownProductError):
            ledger.run(lambda uow: ledger.receive(uow, StockKey("1", "W9"), 5))

    def test_same_unit_can_touch_a_key_twice(self):
        ledger, store = _ledger(10, lock_timeout=0.05, max_retries=0)

        def work(uow):
            ledger.deduct(uow, KEY, 2)
            return ledger.deduct(uow, KEY, 3)

        assert ledger.run(work) == 5
        assert store.stock("1", "W1") == 5

    def test_failed_unit_leaves_no_trace(self):
        ledger, store = _ledger(10)

        def work(uow):
            ledger.deduct(uow, KEY, 2)
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            ledger.run(work)
        assert store.stock("1", "W1") == 10
        assert store.movements == []


def test_clock_default_is_utc():
    ledger, store = _ledger(10)
    before = datetime.now(timezone.utc) - timedelta(seconds=1)
    ledger.apply_sale("1", "W1", 1)
    assert store.inventory[KEY].last_stock_date >= before
