from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator

import psycopg
import pytest

from textile_ops.db.initialize import run_sql_file

# for avoiding schema drift: re-create tables fresh each test.
DROP_ALL = "DROP TABLE IF EXISTS inventory_items, products, profiles, ledgers CASCADE"


@pytest.fixture(scope="session")
def dsn() -> str:
    """
    Postgres for integration tests (e.g. `docker compose up -d`).
    CLI/runtime uses TEXTILE_OPS_DSN; tests only run when TEXTILE_OPS_TEST_DSN is set.
    """
    value = os.getenv("TEXTILE_OPS_TEST_DSN")
    if not value:
        pytest.skip("TEXTILE_OPS_TEST_DSN not set")
    return value


@pytest.fixture()
def conn(dsn: str, repo_root: Path) -> Iterator[psycopg.Connection]:
    """A connection on a freshly initialized schema. Committed on a clean exit."""
    with psycopg.connect(dsn) as c:
        c.execute(DROP_ALL)
        c.commit()
        run_sql_file(c, repo_root / "sql" / "000_init.sql")
        yield c
