from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from textile_ops.parsing.types import RowError


@dataclass(frozen=True)
class ImportSummary:
    """Outcome of one bulk upload. Returned to the caller, never persisted."""
    entity: str
    operation: str
    total_rows: int                 # data rows in the upload, including skipped/failed
    imported_count: int             # persisted (inserted or updated) records
    errors: list[RowError] = field(default_factory=list)
    records: list[dict[str, Any]] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        """Rows skipped as duplicates. They are also listed in `errors`."""
        return sum(1 for e in self.errors if e.is_skip)

    @property
    def failed_count(self) -> int:
        return len(self.errors) - self.skipped_count

    @property
    def error_messages(self) -> list[str]:
        return [e.message for e in self.errors]

    @property
    def message(self) -> str:
        verb = "updated" if self.operation == "update" else "imported"
        return f"Successfully {verb} {self.imported_count} of {self.total_rows} {self.entity}"

    def render_one_line(self) -> str:
        """How the summary is formatted for the terminal."""
        return (
            f"{self.entity}: operation={self.operation} total={self.total_rows} "
            f"imported={self.imported_count} skipped={self.skipped_count} failed={self.failed_count}"
        )

    def to_response(self) -> dict[str, Any]:
        """The JSON body returned for an upload."""
        return {
            "message": self.message,
            "imported": self.imported_count,
            "total": self.total_rows,
            "skipped": self.skipped_count,
            "errors": self.error_messages,
            "data": self.records,
        }
