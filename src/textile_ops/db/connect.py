from __future__ import annotations

from typing import Optional

import psycopg
from psycopg import Connection

from textile_ops.config import get_settings


def get_database_url() -> str:
    """Returns the configured DSN (`TEXTILE_OPS_DSN`, else the local docker default)."""
    return get_settings().dsn


def connect(database_url: Optional[str] = None) -> Connection:
    """
    Return a psycopg connection.

    - Uses `TEXTILE_OPS_DSN`, if `database_url` is not provided.
    - Leaves autocommit OFF (commit on a clean `with` exit, writes are scoped by the store).
    """
    url = database_url or get_database_url()
    return psycopg.connect(url)
