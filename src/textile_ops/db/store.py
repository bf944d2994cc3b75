from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

from textile_ops.db.filters import Predicate


class StorageError(RuntimeError):
    """A storage call failed. The message is the underlying driver error text."""


class Store(Protocol):
    """
    The persistence collaborator the bulk pipeline talks to.

    Stores are constructed by the caller (per request, or per CLI invocation)
    and passed in explicitly. Every method raises `StorageError` on failure.
    """

    def select(
        self,
        table: str,
        predicates: Sequence[Predicate] = (),
        *,
        columns: Sequence[str] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]: ...

    def insert(self, table: str, records: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
        """Insert all `records` in one call, all or nothing. Returns the stored rows."""
        ...

    def update(self, table: str, predicates: Sequence[Predicate], patch: Mapping[str, Any]) -> int:
        """Returns the number of rows updated."""
        ...

    def delete(self, table: str, predicates: Sequence[Predicate]) -> int: ...
