from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterator, Mapping, Sequence

import pytest

from textile_ops.config import get_settings
from textile_ops.db.filters import Predicate, matches_all
from textile_ops.db.store import StorageError
from textile_ops.db.tables import TABLE_SPECS, get_table_spec


def _find_repo_root(start: Path) -> Path:
    marker = "pyproject.toml"
    cur = start.resolve()
    for p in (cur, *cur.parents):
        if (p / marker).exists():
            return p
    raise RuntimeError(f"Could not find repo root from: {start}")


@pytest.fixture(scope="session")
def repo_root() -> Path:
    """The absolute path to the repo root (finds by walking up to `pyproject.toml`)."""
    return _find_repo_root(Path(__file__))


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Settings are cached per process; every test starts from the defaults."""
    for name in ("TEXTILE_OPS_BATCH_SIZE", "TEXTILE_OPS_DEFAULT_COUNTRY", "TEXTILE_OPS_DEFAULT_BRAND"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class MemoryStore:
    """
    In-memory `Store` for unit tests.

    - Rejects unknown tables/columns the way `PostgresStore` does.
    - Fills serial `id`, `created_at` and `updated_at` like the database defaults.
    - `fail_insert_calls` makes the n-th `insert` call (1-based) raise `StorageError`.
    """

    def __init__(self, *, fail_insert_calls: Sequence[int] = ()) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {name: [] for name in TABLE_SPECS}
        self.insert_calls: list[int] = []           # records per insert call
        self.fail_insert_calls = set(fail_insert_calls)
        self._serial = itertools.count(1)
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _check(self, table: str, columns) -> None:
        spec = get_table_spec(table)
        unknown = sorted(set(columns) - set(spec.all_columns))
        if unknown:
            raise ValueError(f"{table}: unknown columns {unknown}")

    def _now(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def seed(self, table: str, *records: Mapping[str, Any]) -> None:
        """Put rows in place without counting as an insert call."""
        for r in records:
            self.tables[table].append(self._stored(table, r))

    def _stored(self, table: str, record: Mapping[str, Any]) -> dict[str, Any]:
        self._check(table, record.keys())
        spec = get_table_spec(table)
        row: dict[str, Any] = {c: None for c in spec.all_columns}
        row.update(record)
        if "id" in spec.system_columns and row.get("id") is None:
            row["id"] = next(self._serial)
        now = self._now()
        row["created_at"] = row.get("created_at") or now
        row["updated_at"] = row.get("updated_at") or now
        return row

    ## -- Store

    def select(
        self,
        table: str,
        predicates: Sequence[Predicate] = (),
        *,
        columns: Sequence[str] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        spec = get_table_spec(table)
        cols = tuple(columns) if columns else spec.all_columns
        self._check(table, cols)
        for p in predicates:
            self._check(table, p.fields)

        rows = [r for r in self.tables[table] if matches_all(predicates, r)]
        if order_by:
            self._check(table, [order_by])
            rows.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by)), reverse=descending)
        return [{c: r.get(c) for c in cols} for r in rows]

    def insert(self, table: str, records: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
        self.insert_calls.append(len(records))
        if len(self.insert_calls) in self.fail_insert_calls:
            raise StorageError(f"simulated failure on insert call {len(self.insert_calls)}")
        stored = [self._stored(table, r) for r in records]
        self.tables[table].extend(stored)
        return [dict(r) for r in stored]

    def update(self, table: str, predicates: Sequence[Predicate], patch: Mapping[str, Any]) -> int:
        if not predicates:
            raise ValueError(f"{table}: refusing an update without predicates")
        self._check(table, patch.keys())
        n = 0
        for r in self.tables[table]:
            if matches_all(predicates, r):
                r.update(patch)
                r["updated_at"] = self._now()
                n += 1
        return n

    def delete(self, table: str, predicates: Sequence[Predicate]) -> int:
        if not predicates:
            raise ValueError(f"{table}: refusing a delete without predicates")
        keep = [r for r in self.tables[table] if not matches_all(predicates, r)]
        n = len(self.tables[table]) - len(keep)
        self.tables[table] = keep
        return n


@pytest.fixture()
def store() -> MemoryStore:
    """An empty in-memory store."""
    return MemoryStore()


@pytest.fixture()
def memory_store_cls() -> type[MemoryStore]:
    """For tests that need a store with simulated failures."""
    return MemoryStore
