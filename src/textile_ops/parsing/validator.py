from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from .primitives import ParseError, normalize_cell
from .schema import RecordSchema, UniqueKey
from .types import BoundRow, RejectCode, RowError, RowResult, ValidatedRecord


@dataclass
class KeyIndex:
    """
    Values already taken for each unique key, normalized per `UniqueKey`.

    Seeded from storage before validation starts, then grown with every accepted
    row so a later row of the same file repeating a key is skipped (first seen wins).
    """
    taken: dict[str, set[Any]] = field(default_factory=dict)

    def add(self, key: UniqueKey, value: Any) -> None:
        v = key.normalize(value)
        if v is not None and v != "":
            self.taken.setdefault(key.field, set()).add(v)

    def seed(self, key: UniqueKey, values: Iterable[Any]) -> None:
        for v in values:
            self.add(key, v)

    def contains(self, key: UniqueKey, value: Any) -> bool:
        v = key.normalize(value)
        return v is not None and v in self.taken.get(key.field, set())


@dataclass
class RowValidator:
    """
    Turn a `BoundRow` into a `ValidatedRecord` or a `RowError`.

    Rejection order is always:
    - 1st: first `missing_required`, in `FieldSpec` order
    - 2nd: first type/format error, in `FieldSpec` order
    - 3rd: unique key already taken (`duplicate_key`, a skip rather than a failure)

    With `apply_defaults` off (update mode) a blank optional cell stays `None`
    so the stored value is left alone.

    Never raises for bad data; one result per row.
    """
    schema: RecordSchema
    keys: KeyIndex = field(default_factory=KeyIndex)
    check_uniqueness: bool = True
    apply_defaults: bool = True

    def validate(self, row: BoundRow) -> RowResult:
        n = row.source_row

        ## -- 1st rejection reason: required field blank
        for f in self.schema.fields:
            if f.required and normalize_cell(row.get(f.name)) is None:
                return RowError(n, RejectCode.missing_required, f"missing required field {f.name}")

        ## -- parsing loop
        out: dict[str, Any] = {}
        for f in self.schema.fields:
            raw_v = normalize_cell(row.get(f.name))
            if raw_v is None:
                # optional and blank: schema default (often `None`)
                out[f.name] = f.default_value() if self.apply_defaults else None
                continue
            try:
                out[f.name] = f.parser(raw_v)
            # 2nd rejection reason: typing / formatting error
            except ParseError as e:
                return RowError(n, e.code, e.detail)

        if self.schema.derive is not None:
            out = self.schema.derive(out)

        ## -- 3rd rejection reason: key already exists
        if self.check_uniqueness:
            for key in self.schema.uniqueness_keys:
                value = out.get(key.field)
                if self.keys.contains(key, value):
                    return RowError(
                        n,
                        RejectCode.duplicate_key,
                        f'{key.label} "{value}" already exists - skipping',
                    )
            for key in self.schema.uniqueness_keys:
                self.keys.add(key, out.get(key.field))

        return ValidatedRecord(values=out, source_row=n)
