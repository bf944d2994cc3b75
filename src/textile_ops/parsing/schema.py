from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

from .primitives import parse_text

# Typing:
# Parser turns a present (non-blank) cell into its typed value, raising `ParseError`.
# Default is a constant or a zero-arg factory used when an optional cell is blank.
# Derive post-processes the typed values of an accepted row.
Parser = Callable[[Any], Any]
Derive = Callable[[dict[str, Any]], dict[str, Any]]


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Any given field's configurable expectations."""
    name: str                           # column name, also the canonical header
    parser: Parser = parse_text         # how to parse this field's value
    required: bool = False              # whether this field's value must exist
    default: Any = None                 # value or factory for blank optional cells

    def default_value(self) -> Any:
        return self.default() if callable(self.default) else self.default


@dataclass(frozen=True, slots=True)
class UniqueKey:
    """A field checked against storage (and earlier rows of the same file) before insert."""
    field: str
    label: str                          # how the key is named in skip messages
    case_insensitive: bool = False

    def normalize(self, value: Any) -> Any:
        if value is None:
            return None
        s = str(value).strip()
        return s.lower() if self.case_insensitive else s


@dataclass(frozen=True, slots=True)
class ExportColumn:
    field: str
    header: str


@dataclass(frozen=True)
class RecordSchema:
    """
    One target table's bulk contract.

    Notes:
    - `header_aliases` maps lower-cased alternative headers (e.g. the labels the
      exporter writes) to field names, so an export can be uploaded again.
    - `id_field` is filled by the writer through `id_factory` when the upload
      leaves it blank.
    - `update_key` enables the `update` operation: rows patch `update_fields` of
      the existing record matched on that field instead of inserting.
    """
    entity_name: str
    table_name: str
    fields: Sequence[FieldSpec]
    uniqueness_keys: Sequence[UniqueKey] = ()
    reject_unknown_headers: bool = False
    header_aliases: Mapping[str, str] = field(default_factory=dict)
    id_field: str | None = None
    id_factory: Callable[[], str] | None = None
    derive: Derive | None = None
    update_key: str | None = None
    update_fields: Sequence[str] = ()
    export_columns: Sequence[ExportColumn] = ()

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def required_fields(self) -> list[str]:
        return [f.name for f in self.fields if f.required]

    def canonical_header(self, header: str) -> str:
        """Lower-cased, trimmed, then resolved through aliases."""
        h = header.strip().lower()
        return self.header_aliases.get(h, h)
