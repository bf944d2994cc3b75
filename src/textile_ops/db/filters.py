from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence

from psycopg import sql


class Predicate(Protocol):
    """
    A row filter that renders to parameterised SQL and also evaluates in memory.

    Identifiers come only from `fields`, which the store checks against its
    whitelisted columns before composing.
    """
    @property
    def fields(self) -> set[str]: ...

    def compose(self) -> tuple[sql.Composable, list[Any]]: ...

    def matches(self, row: Mapping[str, Any]) -> bool: ...


def _escape_like(term: str) -> str:
    """Escape LIKE wildcards so a search term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any

    @property
    def fields(self) -> set[str]:
        return {self.field}

    def compose(self) -> tuple[sql.Composable, list[Any]]:
        return sql.SQL("{} = %s").format(sql.Identifier(self.field)), [self.value]

    def matches(self, row: Mapping[str, Any]) -> bool:
        return row.get(self.field) == self.value


@dataclass(frozen=True)
class ILike:
    """Case-insensitive substring match."""
    field: str
    term: str

    @property
    def fields(self) -> set[str]:
        return {self.field}

    def compose(self) -> tuple[sql.Composable, list[Any]]:
        return (
            sql.SQL("{} ILIKE %s").format(sql.Identifier(self.field)),
            [f"%{_escape_like(self.term)}%"],
        )

    def matches(self, row: Mapping[str, Any]) -> bool:
        value = row.get(self.field)
        return value is not None and self.term.lower() in str(value).lower()


@dataclass(frozen=True)
class Range:
    """Inclusive bounds. A `None` bound is open."""
    field: str
    low: Any = None
    high: Any = None

    @property
    def fields(self) -> set[str]:
        return {self.field}

    def compose(self) -> tuple[sql.Composable, list[Any]]:
        col = sql.Identifier(self.field)
        parts: list[sql.Composable] = []
        params: list[Any] = []
        if self.low is not None:
            parts.append(sql.SQL("{} >= %s").format(col))
            params.append(self.low)
        if self.high is not None:
            parts.append(sql.SQL("{} <= %s").format(col))
            params.append(self.high)
        if not parts:
            return sql.SQL("TRUE"), []
        return sql.SQL("(") + sql.SQL(" AND ").join(parts) + sql.SQL(")"), params

    def matches(self, row: Mapping[str, Any]) -> bool:
        value = row.get(self.field)
        if value is None:
            return False
        if self.low is not None and value < self.low:
            return False
        if self.high is not None and value > self.high:
            return False
        return True


@dataclass(frozen=True)
class IsNull:
    field: str
    is_null: bool = True

    @property
    def fields(self) -> set[str]:
        return {self.field}

    def compose(self) -> tuple[sql.Composable, list[Any]]:
        op = "IS NULL" if self.is_null else "IS NOT NULL"
        return sql.SQL("{} " + op).format(sql.Identifier(self.field)), []

    def matches(self, row: Mapping[str, Any]) -> bool:
        return (row.get(self.field) is None) == self.is_null


@dataclass(frozen=True)
class In:
    """Membership in `values`. Used to prefetch existing unique keys in one query."""
    field: str
    values: Sequence[Any]
    case_insensitive: bool = False

    @property
    def fields(self) -> set[str]:
        return {self.field}

    def compose(self) -> tuple[sql.Composable, list[Any]]:
        if not self.values:
            return sql.SQL("FALSE"), []
        col = sql.Identifier(self.field)
        if self.case_insensitive:
            return (
                sql.SQL("lower({}) = ANY(%s)").format(col),
                [[str(v).lower() for v in self.values]],
            )
        return sql.SQL("{} = ANY(%s)").format(col), [list(self.values)]

    def matches(self, row: Mapping[str, Any]) -> bool:
        value = row.get(self.field)
        if value is None:
            return False
        if self.case_insensitive:
            return str(value).lower() in {str(v).lower() for v in self.values}
        return value in self.values


@dataclass(frozen=True)
class AnyOf:
    """OR of several predicates, e.g. a search term across name/email/mobile."""
    predicates: Sequence[Predicate]

    @property
    def fields(self) -> set[str]:
        out: set[str] = set()
        for p in self.predicates:
            out |= p.fields
        return out

    def compose(self) -> tuple[sql.Composable, list[Any]]:
        if not self.predicates:
            return sql.SQL("FALSE"), []
        parts: list[sql.Composable] = []
        params: list[Any] = []
        for p in self.predicates:
            clause, ps = p.compose()
            parts.append(clause)
            params.extend(ps)
        return sql.SQL("(") + sql.SQL(" OR ").join(parts) + sql.SQL(")"), params

    def matches(self, row: Mapping[str, Any]) -> bool:
        return any(p.matches(row) for p in self.predicates)


def compose_where(predicates: Sequence[Predicate]) -> tuple[sql.Composable, list[Any]]:
    """AND all predicates into a `WHERE` clause (empty when there are none)."""
    if not predicates:
        return sql.SQL(""), []
    parts: list[sql.Composable] = []
    params: list[Any] = []
    for p in predicates:
        clause, ps = p.compose()
        parts.append(clause)
        params.extend(ps)
    return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(parts), params


def matches_all(predicates: Sequence[Predicate], row: Mapping[str, Any]) -> bool:
    return all(p.matches(row) for p in predicates)
