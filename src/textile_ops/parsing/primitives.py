from __future__ import annotations

import re
import secrets
import time
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

from .types import RejectCode


@dataclass
class ParseError(Exception):
    """Handles rejected fields, with the row-facing message as `detail`."""
    code: RejectCode            # classifies the rejection
    detail: str                 # message shown to the uploader, without the row prefix


_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_WHITESPACE_RE = re.compile(r"\s")


def normalize_cell(v: Any) -> Any:
    """Trim a raw cell. Empty or whitespace-only strings become `None`, any other text is kept as-is."""
    if v is None:
        return None
    if isinstance(v, str):
        s = v.strip()
        return s or None
    return v


def is_blank(v: Any) -> bool:
    return normalize_cell(v) is None


## -- text fields

def parse_text(v: Any) -> str:
    """Trimmed text."""
    return str(v).strip()


def parse_email(v: Any) -> str:
    s = str(v).strip()
    if not _EMAIL_RE.match(s):
        raise ParseError(RejectCode.invalid_format, f"Invalid email format: {s}")
    return s


def normalize_tax_id(v: Any) -> str:
    """Strip every whitespace character and uppercase. `"27 aapcu1234c1zv"` -> `"27AAPCU1234C1ZV"`."""
    return _WHITESPACE_RE.sub("", str(v)).upper()


def tax_id_parser(length: int, *, label: str):
    """
    Build a parser for a fixed-length alphanumeric tax identifier
    (15 for GST numbers, 10 for PAN numbers).
    """
    pattern = re.compile(rf"^[0-9A-Z]{{{length}}}$")

    def _parse(v: Any) -> str:
        s = normalize_tax_id(v)
        if not pattern.match(s):
            raise ParseError(
                RejectCode.invalid_format,
                f"Invalid {label} format: {s}. Must be {length} alphanumeric characters",
            )
        return s

    return _parse


def enum_parser(field: str, allowed: Iterable[str]):
    """Membership check, case-sensitive."""
    members = tuple(allowed)

    def _parse(v: Any) -> str:
        s = str(v).strip()
        if s not in members:
            raise ParseError(
                RejectCode.invalid_enum,
                f'Invalid {field} "{s}". Must be one of: {", ".join(members)}',
            )
        return s

    return _parse


## -- numbers

def parse_int(v: Any, *, field: str, non_negative: bool = False) -> int:
    """Parse integers. "12.3" or "1e-4" fail rather than being coerced."""
    s = str(v).strip()
    try:
        if ("." in s) or ("e" in s.lower()):
            raise ValueError(s)
        n = int(s)
    except ValueError:
        raise ParseError(RejectCode.invalid_int, f'Invalid {field} "{s}"')
    if non_negative and n < 0:
        raise ParseError(RejectCode.negative_value, f'Invalid {field} "{s}"')
    return n


def parse_decimal(v: Any, *, field: str, non_negative: bool = False) -> Decimal:
    """Parse to a 2-place decimal (numeric(12,2) in the tables)."""
    s = str(v).strip()
    try:
        d = Decimal(s)
    except (InvalidOperation, ValueError):
        raise ParseError(RejectCode.invalid_numeric, f'Invalid {field} "{s}"')
    if not d.is_finite():
        raise ParseError(RejectCode.invalid_numeric, f'Invalid {field} "{s}"')
    if non_negative and d < 0:
        raise ParseError(RejectCode.negative_value, f'Invalid {field} "{s}"')
    try:
        d2 = d.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        d2 = None
    if d2 is None or len(d2.as_tuple().digits) > 12:
        raise ParseError(RejectCode.invalid_numeric, f'Invalid {field} "{s}": exceeds precision (12,2)')
    return d2


## -- dates / bools

def parse_date_yyyy_mm_dd(v: Any, *, field: str) -> date:
    s = str(v).strip()
    try:
        return date.fromisoformat(s)
    except ValueError:
        raise ParseError(RejectCode.invalid_date, f'Invalid {field} "{s}" (expected YYYY-MM-DD)')


def parse_bool(v: Any, *, field: str) -> bool:
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in ("1", "true", "t", "yes", "y"): return True
    if s in ("0", "false", "f", "no", "n"): return False
    raise ParseError(RejectCode.invalid_bool, f'Invalid {field} "{v}" (expected true/false)')


## -- system identifiers

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def prefixed_id(prefix: str) -> str:
    """`"{PREFIX}-{epoch millis}-{9 random base36 chars}"`, e.g. `LDG-1760000000000-k3j9x0q2m`."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


def prefixed_id_factory(prefix: str):
    return lambda: prefixed_id(prefix)
