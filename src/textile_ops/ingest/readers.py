from __future__ import annotations

from pathlib import Path

from textile_ops.parsing.types import StructuralError


def check_csv_filename(filename: str | None) -> None:
    """Only `.csv` uploads are accepted (by extension, case-insensitive)."""
    if not filename or not filename.strip().lower().endswith(".csv"):
        raise StructuralError("Only CSV files are allowed")


def decode_upload(data: bytes) -> str:
    """
    Decode uploaded bytes as UTF-8. A leading byte-order mark is dropped so it
    never sticks to the first header.
    """
    if not data:
        raise StructuralError("No file provided")
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise StructuralError(f"CSV file must be UTF-8 encoded ({e.reason} at byte {e.start})") from e


def read_csv_file(path: Path) -> str:
    """Read a local `.csv` file the way an upload is read."""
    check_csv_filename(path.name)
    return decode_upload(path.read_bytes())
