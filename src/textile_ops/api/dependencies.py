"""
Shared FastAPI dependencies.
"""

from __future__ import annotations

from typing import Iterator

from textile_ops.db.connect import connect
from textile_ops.db.postgres import PostgresStore
from textile_ops.db.store import Store


def get_store() -> Iterator[Store]:
    """
    One store per request over its own connection.
    Committed when the request completes, rolled back if it raises.
    """
    with connect() as conn:
        yield PostgresStore(conn)
