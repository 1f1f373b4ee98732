"""Durable key-value store with all-or-nothing transactions.

Records are JSON-compatible values keyed by string. Writes made inside
``transaction()`` are staged and become visible to other readers only
when the block exits cleanly; an exception discards every staged write.

With a storage path the committed records are written to a JSON file
(write to temp file, then ``os.replace``) so a crash mid-write never leaves
a partial file behind. Without one the store is purely in-memory.

Persisted layout:
    "campaign_count"   → int
    "campaign:<id>"    → campaign record dict
"""

from __future__ import annotations

import copy
import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional


COUNTER_KEY = "campaign_count"
CAMPAIGN_PREFIX = "campaign:"
_FORMAT_VERSION = 1
_MISSING = object()


def campaign_key(campaign_id: int) -> str:
    return f"{CAMPAIGN_PREFIX}{campaign_id}"


class StateStore:
    """Ordered key → record map with staged, atomic commits.

    Usage:
        store = StateStore(storage_path=Path("data/state.json"))
        with store.transaction():
            store.set("campaign_count", 1)
            store.set("campaign:0", {...})
        store.get("campaign_count")  # 1
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._storage_path = storage_path
        self._records: dict[str, Any] = {}
        self._staged: Optional[dict[str, Any]] = None

        if storage_path and storage_path.exists():
            self._records = self._load_from_file(storage_path)

    @property
    def in_transaction(self) -> bool:
        return self._staged is not None

    def get(self, key: str, default: Any = None) -> Any:
        """Return a copy of the record at key (staged writes win)."""
        if self._staged is not None and key in self._staged:
            return copy.deepcopy(self._staged[key])
        value = self._records.get(key, _MISSING)
        if value is _MISSING:
            return default
        return copy.deepcopy(value)

    def has(self, key: str) -> bool:
        if self._staged is not None and key in self._staged:
            return True
        return key in self._records

    def set(self, key: str, value: Any) -> None:
        """Write a record.

        Inside a transaction the write is staged; outside one it is
        committed immediately as a single-write transaction.
        """
        if self._staged is not None:
            self._staged[key] = copy.deepcopy(value)
            return
        with self.transaction():
            self.set(key, value)

    def keys(self, prefix: str = "") -> list[str]:
        """Return committed and staged keys with the given prefix, sorted."""
        found = set(self._records)
        if self._staged is not None:
            found.update(self._staged)
        return sorted(k for k in found if k.startswith(prefix))

    @contextmanager
    def transaction(self) -> Iterator[StateStore]:
        """Stage writes and commit them together.

        Nested calls join the outer transaction. On exception the staged
        writes are discarded and the exception propagates. If the file
        write fails (OSError) the in-memory records keep their prior
        values.
        """
        if self._staged is not None:
            yield self
            return

        self._staged = {}
        try:
            yield self
            staged = self._staged
        except BaseException:
            self._staged = None
            raise

        self._staged = None
        if not staged:
            return
        merged = dict(self._records)
        merged.update(staged)
        if self._storage_path:
            self._write_file(self._storage_path, merged)
        self._records = merged

    def _write_file(self, path: Path, records: dict[str, Any]) -> None:
        """Atomically replace the storage file with the given records."""
        path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(
            {"version": _FORMAT_VERSION, "records": records},
            sort_keys=True,
            ensure_ascii=False,
            indent=2,
        )
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    @staticmethod
    def _load_from_file(path: Path) -> dict[str, Any]:
        """Load committed records. Fail-closed on malformed files."""
        with path.open("r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Corrupt state file {path}: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("records"), dict):
            raise ValueError(f"Corrupt state file {path}: missing records map")
        if data.get("version") != _FORMAT_VERSION:
            raise ValueError(
                f"Unsupported state file version in {path}: {data.get('version')!r}"
            )
        return data["records"]
