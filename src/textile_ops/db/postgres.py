from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

import psycopg
from psycopg import Connection, sql
from psycopg.rows import dict_row

from textile_ops.db.filters import Predicate, compose_where
from textile_ops.db.store import StorageError
from textile_ops.db.tables import TableSpec, get_table_spec

logger = logging.getLogger(__name__)


class PostgresStore:
    """
    `Store` over one psycopg connection.

    Table and column identifiers are interpolated ONLY after being checked
    against the whitelisted `TABLE_SPECS`. Values are always parameterized.

    Each write runs inside `conn.transaction()`: a failed write rolls back just
    that call (a savepoint when a transaction is already open) and earlier
    writes are kept. Committing the outer transaction is the caller's job
    (`with connect() as conn:` commits on a clean exit).
    """

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    ## -- identifier guards

    def _spec(self, table: str) -> TableSpec:
        return get_table_spec(table)

    @staticmethod
    def _check_columns(spec: TableSpec, columns: Sequence[str] | set[str]) -> None:
        unknown = sorted(set(columns) - set(spec.all_columns))
        if unknown:
            raise ValueError(f"{spec.table_name}: unknown columns {unknown}")

    def _check_predicates(self, spec: TableSpec, predicates: Sequence[Predicate]) -> None:
        for p in predicates:
            self._check_columns(spec, p.fields)

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
        spec = self._spec(table)
        cols = tuple(columns) if columns else spec.all_columns
        self._check_columns(spec, cols)
        self._check_predicates(spec, predicates)

        where, params = compose_where(predicates)
        query = sql.SQL("SELECT {cols} FROM {tbl}{where}").format(
            cols=sql.SQL(", ").join(sql.Identifier(c) for c in cols),
            tbl=sql.Identifier(spec.table_name),
            where=where,
        )
        if order_by:
            self._check_columns(spec, [order_by])
            query += sql.SQL(" ORDER BY {col} {direction}").format(
                col=sql.Identifier(order_by),
                direction=sql.SQL("DESC" if descending else "ASC"),
            )

        try:
            with self._conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                return list(cur.fetchall())
        except psycopg.Error as e:
            raise StorageError(str(e)) from e

    def insert(self, table: str, records: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
        if not records:
            return []
        spec = self._spec(table)

        # column order follows the TableSpec, restricted to keys the records carry
        present = set().union(*(r.keys() for r in records))
        self._check_columns(spec, present)
        cols = [c for c in spec.all_columns if c in present]

        row_tpl = sql.SQL("({})").format(sql.SQL(", ").join(sql.Placeholder() for _ in cols))
        query = sql.SQL("INSERT INTO {tbl} ({cols}) VALUES {rows} RETURNING *").format(
            tbl=sql.Identifier(spec.table_name),
            cols=sql.SQL(", ").join(sql.Identifier(c) for c in cols),
            rows=sql.SQL(", ").join(row_tpl for _ in records),
        )
        params: list[Any] = [r.get(c) for r in records for c in cols]

        try:
            with self._conn.transaction():
                with self._conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(query, params)
                    return list(cur.fetchall())
        except psycopg.Error as e:
            logger.warning("insert into %s failed (%d records): %s", table, len(records), e)
            raise StorageError(str(e)) from e

    def update(self, table: str, predicates: Sequence[Predicate], patch: Mapping[str, Any]) -> int:
        spec = self._spec(table)
        if not predicates:
            raise ValueError(f"{table}: refusing an update without predicates")
        if not patch:
            return 0
        self._check_columns(spec, list(patch.keys()))
        self._check_predicates(spec, predicates)

        assignments = [sql.SQL("{} = %s").format(sql.Identifier(c)) for c in patch]
        if "updated_at" in spec.all_columns and "updated_at" not in patch:
            assignments.append(sql.SQL("updated_at = now()"))
        where, where_params = compose_where(predicates)
        query = sql.SQL("UPDATE {tbl} SET {sets}{where}").format(
            tbl=sql.Identifier(spec.table_name),
            sets=sql.SQL(", ").join(assignments),
            where=where,
        )

        try:
            with self._conn.transaction():
                with self._conn.cursor() as cur:
                    cur.execute(query, [*patch.values(), *where_params])
                    return cur.rowcount
        except psycopg.Error as e:
            raise StorageError(str(e)) from e

    def delete(self, table: str, predicates: Sequence[Predicate]) -> int:
        spec = self._spec(table)
        if not predicates:
            raise ValueError(f"{table}: refusing a delete without predicates")
        self._check_predicates(spec, predicates)

        where, params = compose_where(predicates)
        query = sql.SQL("DELETE FROM {tbl}{where}").format(tbl=sql.Identifier(spec.table_name), where=where)

        try:
            with self._conn.transaction():
                with self._conn.cursor() as cur:
                    cur.execute(query, params)
                    return cur.rowcount
        except psycopg.Error as e:
            raise StorageError(str(e)) from e
