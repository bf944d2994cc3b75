from __future__ import annotations

from typing import Mapping

from textile_ops.config import get_settings
from textile_ops.db.filters import AnyOf, ILike, IsNull, Predicate
from textile_ops.parsing.primitives import parse_email, prefixed_id_factory, tax_id_parser
from textile_ops.parsing.schema import ExportColumn, FieldSpec, RecordSchema, UniqueKey

# export labels, also accepted back as upload headers
_LEDGER_EXPORT = (
    ExportColumn("ledger_id", "Ledger ID"),
    ExportColumn("business_name", "Business Name"),
    ExportColumn("contact_person_name", "Contact Person"),
    ExportColumn("mobile_number", "Mobile Number"),
    ExportColumn("email", "Email"),
    ExportColumn("address", "Address"),
    ExportColumn("city", "City"),
    ExportColumn("district", "District"),
    ExportColumn("state", "State"),
    ExportColumn("country", "Country"),
    ExportColumn("zip_code", "ZIP Code"),
    ExportColumn("gst_number", "GST Number"),
    ExportColumn("pan_number", "PAN Number"),
    ExportColumn("business_logo", "Business Logo"),
    ExportColumn("created_at", "Created At"),
    ExportColumn("updated_at", "Updated At"),
)

_LEDGER_HEADER_ALIASES: dict[str, str] = {
    c.header.lower(): c.field for c in _LEDGER_EXPORT
} | {
    "contact_person": "contact_person_name",
    "mobile": "mobile_number",
    "gst": "gst_number",
    "pan": "pan_number",
}


LEDGER_SCHEMA = RecordSchema(
    entity_name="ledgers",
    table_name="ledgers",
    reject_unknown_headers=False,       # `Created At` etc. from an export are ignored
    header_aliases=_LEDGER_HEADER_ALIASES,
    id_field="ledger_id",
    id_factory=prefixed_id_factory("LDG"),
    uniqueness_keys=(
        UniqueKey("business_name", "Business name", case_insensitive=True),
        UniqueKey("ledger_id", "Ledger ID"),
    ),
    export_columns=_LEDGER_EXPORT,
    fields=(
        FieldSpec("ledger_id"),
        FieldSpec("business_name", required=True),
        FieldSpec("contact_person_name"),
        FieldSpec("mobile_number"),
        FieldSpec("email", parse_email),
        FieldSpec("address"),
        FieldSpec("city"),
        FieldSpec("district"),
        FieldSpec("state"),
        FieldSpec("country", default=lambda: get_settings().default_country),
        FieldSpec("zip_code"),
        FieldSpec("gst_number", tax_id_parser(15, label="GST number")),
        FieldSpec("pan_number", tax_id_parser(10, label="PAN number")),
        FieldSpec("business_logo"),
    ),
)


def ledger_export_filters(params: Mapping[str, str]) -> list[Predicate]:
    """`search` (name/contact/email/mobile), `city`, `state` substrings, `has_gst` true/false."""
    out: list[Predicate] = []
    search = (params.get("search") or "").strip()
    if search:
        out.append(AnyOf(tuple(
            ILike(f, search) for f in ("business_name", "contact_person_name", "email", "mobile_number")
        )))
    for f in ("city", "state"):
        v = (params.get(f) or "").strip()
        if v:
            out.append(ILike(f, v))
    has_gst = (params.get("has_gst") or "").strip().lower()
    if has_gst in ("true", "false"):
        out.append(IsNull("gst_number", is_null=(has_gst == "false")))
    return out
