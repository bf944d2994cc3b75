from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from textile_ops.db.filters import Predicate
from textile_ops.db.store import Store
from textile_ops.parsing.registry import EntityKind, get_entity_spec
from textile_ops.parsing.schema import ExportColumn, RecordSchema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportFile:
    """A rendered CSV download."""
    filename: str
    content: str
    row_count: int
    media_type: str = "text/csv"

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'


def format_value(v: Any) -> str:
    """Stringify one stored value for CSV. `None` -> empty, bools -> `true`/`false`."""
    if v is None:
        return ""
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (date, datetime)):
        return v.isoformat()
    if isinstance(v, Decimal):
        return format(v, "f")
    return str(v)


def serialize_csv(
    columns: Sequence[ExportColumn],
    records: Sequence[Mapping[str, Any]],
    *,
    delimiter: str = ",",
) -> str:
    """
    Header line of column labels, then one line per record, `\\n`-joined.

    A value is quoted only when it holds the delimiter, a quote or a line break;
    quotes inside are doubled.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=delimiter, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow([c.header for c in columns])
    for r in records:
        writer.writerow([format_value(r.get(c.field)) for c in columns])
    return buf.getvalue().removesuffix("\n")


def export_records(
    store: Store,
    table: str,
    columns: Sequence[ExportColumn],
    predicates: Sequence[Predicate] = (),
    *,
    order_by: Optional[str] = None,
    descending: bool = False,
    delimiter: str = ",",
) -> tuple[str, int]:
    """
    Query every matching record (no paging here, narrow with `predicates`) and serialize.
    Returns `(csv_text, row_count)`.
    """
    records = store.select(
        table,
        predicates,
        columns=[c.field for c in columns],
        order_by=order_by,
        descending=descending,
    )
    return serialize_csv(columns, records, delimiter=delimiter), len(records)


def export_csv(
    store: Store,
    schema: RecordSchema,
    predicates: Sequence[Predicate] = (),
    *,
    delimiter: str = ",",
    today: Optional[date] = None,
    order_by: Optional[str] = "created_at",
    descending: bool = False,
) -> ExportFile:
    """Export `schema`'s table with its export labels as `<entity>-export-<date>.csv`."""
    content, n = export_records(
        store,
        schema.table_name,
        schema.export_columns,
        predicates,
        order_by=order_by,
        descending=descending,
        delimiter=delimiter,
    )
    day = (today or date.today()).isoformat()
    logger.info("%s export: %d rows, %d filters", schema.entity_name, n, len(predicates))
    return ExportFile(filename=f"{schema.entity_name}-export-{day}.csv", content=content, row_count=n)


def export_entity(
    store: Store,
    entity: str | EntityKind,
    params: Optional[Mapping[str, str]] = None,
    *,
    today: Optional[date] = None,
) -> ExportFile:
    """Export one entity, filtered and ordered the way its `EntitySpec` says."""
    spec = get_entity_spec(entity)
    return export_csv(
        store,
        spec.schema,
        spec.export_filters(params or {}),
        today=today,
        order_by=spec.export_order_by,
        descending=spec.export_descending,
    )
