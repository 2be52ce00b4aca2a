"""Per-key lock registry for stock counters."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

from stockledger.domain.exceptions import ConcurrencyTimeoutError
from stockledger.domain.model.value_objects import StockKey


@dataclass
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0  # holders plus waiters


class KeyedLocks:
    """One lock per StockKey while anyone holds or waits for it.

    The registry guard is only held while looking a lock up, so writers on
    different keys never wait for each other. An entry is dropped when its
    last user leaves, so keys that were only tried once (unknown products,
    say) do not pile up.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[StockKey, _Entry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def is_locked(self, key: StockKey) -> bool:
        with self._guard:
            entry = self._entries.get(key)
            return entry is not None and entry.lock.locked()

    @contextmanager
    def acquire(self, key: StockKey, timeout: float) -> Iterator[None]:
        """Hold the lock for ``key``, waiting at most ``timeout`` seconds.

        Raises ConcurrencyTimeoutError if the wait runs out.
        """
        entry = self._join(key)
        try:
            if not entry.lock.acquire(timeout=timeout):
                raise ConcurrencyTimeoutError(
                    f"Timed out after {timeout}s waiting for the stock lock on {key}"
                )
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._leave(key, entry)

    def _join(self, key: StockKey) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
            return entry

    def _leave(self, key: StockKey, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]
