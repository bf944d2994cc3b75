from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


class RejectCode(str, Enum):
    """Typed rejection classifications."""
    missing_required = "missing_required"
    invalid_format = "invalid_format"           # email, tax ids
    invalid_enum = "invalid_enum"
    invalid_int = "invalid_int"
    invalid_numeric = "invalid_numeric"
    negative_value = "negative_value"
    invalid_date = "invalid_date"
    invalid_bool = "invalid_bool"
    duplicate_key = "duplicate_key"             # skipped, not failed
    not_found = "not_found"                     # update target missing
    write_failed = "write_failed"


class StructuralError(ValueError):
    """The upload as a whole is unusable. Raised before any row is processed."""


class AuthorizationError(PermissionError):
    """Caller's role may not bulk-write this entity."""


@dataclass(frozen=True, slots=True)
class TokenizedRow:
    """One non-blank line of the upload, split into trimmed cells."""
    line_number: int        # 1-based physical line, header is 1
    cells: list[str]


@dataclass(frozen=True, slots=True)
class BoundRow:
    """Cells paired with their schema field names."""
    source_row: int
    values: dict[str, str]

    def get(self, name: str) -> str:
        return self.values.get(name, "")


@dataclass(frozen=True, slots=True)
class ValidatedRecord:
    """Accepted row, typed and normalized, ready for the writer."""
    values: dict[str, Any]
    source_row: int

    def to_mapping(self) -> Mapping[str, Any]:
        """Values ready for insert. Keys match the target table's column names."""
        return self.values


@dataclass(frozen=True, slots=True)
class RowError:
    """A rejected row. Exactly one per rejected row."""
    source_row: int
    reason_code: RejectCode
    detail: str

    @property
    def message(self) -> str:
        return f"Row {self.source_row}: {self.detail}"

    @property
    def is_skip(self) -> bool:
        """Duplicates are skipped with a warning rather than failed."""
        return self.reason_code == RejectCode.duplicate_key


RowResult = ValidatedRecord | RowError


@dataclass
class WriteOutcome:
    """What the batch writer managed to persist."""
    persisted: list[dict[str, Any]] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
