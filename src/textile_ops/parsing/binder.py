from __future__ import annotations

from dataclasses import dataclass, field

from .schema import RecordSchema
from .types import BoundRow, StructuralError, TokenizedRow


@dataclass(frozen=True)
class HeaderBinding:
    """Header positions for one upload, resolved against a `RecordSchema`."""
    header_to_index: dict[str, int]                     # field name -> cell index, in header order
    ignored: list[str] = field(default_factory=list)    # unknown headers dropped per row

    def bind(self, row: TokenizedRow) -> BoundRow:
        """Pair cells with field names. Short rows bind missing cells as `""`, extra cells are dropped."""
        cells = row.cells
        values = {
            name: (cells[i] if i < len(cells) else "")
            for name, i in self.header_to_index.items()
        }
        return BoundRow(source_row=row.line_number, values=values)


def bind_headers(header_row: TokenizedRow, schema: RecordSchema) -> HeaderBinding:
    """
    Map the header row onto `schema`.

    Raises `StructuralError` (failing the whole upload) on:
    - required fields missing from the headers,
    - unknown headers, when `schema.reject_unknown_headers` is set.

    Otherwise unknown headers are ignored. A repeated header binds its first column.
    """
    found = [h.strip().lower() for h in header_row.cells]
    known = set(schema.field_names)

    header_to_index: dict[str, int] = {}
    unknown: list[str] = []
    for i, raw in enumerate(header_row.cells):
        if not raw.strip():
            continue
        name = schema.canonical_header(raw)
        if name not in known:
            unknown.append(raw.strip())
            continue
        header_to_index.setdefault(name, i)

    missing = [f for f in schema.required_fields if f not in header_to_index]
    if missing:
        raise StructuralError(
            f"Missing required headers: {', '.join(missing)}. Found headers: {', '.join(found)}"
        )

    if schema.reject_unknown_headers and unknown:
        raise StructuralError(f"Invalid headers: {', '.join(unknown)}")

    return HeaderBinding(header_to_index=header_to_index, ignored=unknown)
