"""A single JSON document on disk, plus the change set units of work stage.

Layout::

    {"products": [...], "inventory": [...], "sales": [...], "movements": [...]}

Writers never overwrite the file with a document they loaded earlier:
``update`` takes an exclusive lock on a sibling ``.lock`` file, reloads,
applies a change set and swaps the file in with ``os.replace`` so readers
never see a half-written file. The lock file makes this hold across
processes, e.g. two CLI invocations on the same data directory.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from filelock import FileLock, Timeout

from stockledger.domain.exceptions import (
    ConcurrencyTimeoutError,
    ConcurrentUpdateError,
)
from stockledger.domain.model.value_objects import StockKey

SECTIONS = ("products", "inventory", "sales", "movements")


class JsonDocumentStore:

    def __init__(self, file_path: Path, lock_timeout: float = 10.0) -> None:
        self._file_path = file_path
        self._lock_timeout = lock_timeout
        self._guard = threading.Lock()
        self._file_lock = FileLock(str(file_path) + ".lock")
        self._ensure_file()

    @property
    def file_path(self) -> Path:
        return self._file_path

    def read(self) -> dict:
        return self._load()

    def update(self, mutate: Callable[[dict], None]) -> None:
        with self._guard, self._exclusive():
            document = self._load()
            mutate(document)
            self._persist(document)

    # --- File helpers ---------------------------------------------------------

    def _exclusive(self):
        try:
            return self._file_lock.acquire(timeout=self._lock_timeout)
        except Timeout as exc:
            raise ConcurrencyTimeoutError(
                f"Timed out after {self._lock_timeout}s waiting for {exc.lock_file}"
            ) from exc

    def _load(self) -> dict:
        document = json.loads(self._file_path.read_text(encoding="utf-8"))
        for section in SECTIONS:
            document.setdefault(section, [])
        return document

    def _persist(self, document: dict) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=self._file_path.parent, prefix=self._file_path.name, suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(json.dumps(document, indent=2) + "\n")
            os.replace(tmp_name, self._file_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            with self._exclusive():
                if not self._file_path.exists():
                    self._persist({section: [] for section in SECTIONS})


@dataclass
class ChangeSet:
    """Raw records staged by one unit of work.

    ``read_levels`` remembers the committed stock of every key read for
    update (None if it had no record). A commit is refused if any of them
    has moved since.
    """

    products: dict[str, dict] = field(default_factory=dict)
    inventory: dict[StockKey, dict] = field(default_factory=dict)
    sales: list[dict] = field(default_factory=list)
    movements: list[dict] = field(default_factory=list)
    read_levels: dict[StockKey, int | None] = field(default_factory=dict)

    def clear(self) -> None:
        self.products.clear()
        self.inventory.clear()
        self.sales.clear()
        self.movements.clear()
        self.read_levels.clear()

    def apply_to(self, document: dict) -> None:
        inventory = {
            (raw["product_id"], raw["warehouse_id"]): raw
            for raw in document["inventory"]
        }
        for key, expected in self.read_levels.items():
            if key not in self.inventory:
                continue
            current = inventory.get((key.product_id, key.warehouse_id))
            found = current["stock"] if current is not None else None
            if found != expected:
                raise ConcurrentUpdateError(key, expected, found)

        products = {raw["id"]: raw for raw in document["products"]}
        products.update(self.products)
        document["products"] = list(products.values())

        for key, raw in self.inventory.items():
            inventory[(key.product_id, key.warehouse_id)] = raw
        document["inventory"] = list(inventory.values())

        document["sales"].extend(self.sales)
        document["movements"].extend(self.movements)
