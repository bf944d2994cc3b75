from __future__ import annotations

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Mapping

from textile_ops.db.filters import AnyOf, Eq, ILike, Predicate, Range
from textile_ops.parsing.primitives import (
    enum_parser,
    parse_date_yyyy_mm_dd,
    parse_decimal,
    parse_int,
    prefixed_id_factory,
)
from textile_ops.parsing.schema import ExportColumn, FieldSpec, RecordSchema, UniqueKey

CLASSIFICATIONS = ("good", "bad", "wastage", "unclassified")


def _derive_total_cost(values: dict[str, Any]) -> dict[str, Any]:
    """`total_cost` is always quantity x price_per_piece, whatever the upload said."""
    qty = values.get("quantity")
    price = values.get("price_per_piece")
    if qty is None or price is None:
        # update row without a price: the stored total is left alone
        values["total_cost"] = None
        return values
    values["total_cost"] = (Decimal(qty) * price).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return values


INVENTORY_SCHEMA = RecordSchema(
    entity_name="inventory",
    table_name="inventory_items",
    reject_unknown_headers=False,
    header_aliases={"classification": "inventory_classification"},
    id_field="inventory_number",
    id_factory=prefixed_id_factory("INV"),
    uniqueness_keys=(UniqueKey("inventory_number", "Inventory number"),),
    derive=_derive_total_cost,
    update_key="product_sku",
    update_fields=("inventory_classification", "quantity", "price_per_piece", "total_cost", "quality"),
    fields=(
        FieldSpec("inventory_number"),
        FieldSpec("challan_no"),
        FieldSpec("date", lambda v: parse_date_yyyy_mm_dd(v, field="date"), default=date.today),
        FieldSpec("quality", default="Standard"),
        FieldSpec(
            "quantity",
            lambda v: parse_int(v, field="quantity", non_negative=True),
            required=True,
        ),
        FieldSpec("product_name", required=True),
        FieldSpec("product_sku", required=True),
        FieldSpec(
            "inventory_classification",
            enum_parser("classification", CLASSIFICATIONS),
            required=True,
        ),
        FieldSpec(
            "price_per_piece",
            lambda v: parse_decimal(v, field="price_per_piece", non_negative=True),
            default=Decimal("0.00"),
        ),
        FieldSpec(
            "total_cost",
            lambda v: parse_decimal(v, field="total_cost", non_negative=True),
        ),
    ),
    export_columns=(
        ExportColumn("inventory_number", "inventory_number"),
        ExportColumn("challan_no", "challan_no"),
        ExportColumn("date", "date"),
        ExportColumn("quality", "quality"),
        ExportColumn("quantity", "quantity"),
        ExportColumn("product_name", "product_name"),
        ExportColumn("product_sku", "product_sku"),
        ExportColumn("inventory_classification", "classification"),
        ExportColumn("price_per_piece", "price_per_piece"),
        ExportColumn("total_cost", "total_cost"),
    ),
)


def _iso_date(value: str | None) -> date | None:
    try:
        return date.fromisoformat((value or "").strip())
    except ValueError:
        return None


def inventory_export_filters(params: Mapping[str, str]) -> list[Predicate]:
    """
    Exact `classification` (`all` = no filter), `search` (name/sku), and an
    inclusive `date_from`..`date_to` window. Unparseable dates are ignored.
    """
    out: list[Predicate] = []
    classification = (params.get("classification") or "").strip()
    if classification and classification != "all":
        out.append(Eq("inventory_classification", classification))
    search = (params.get("search") or "").strip()
    if search:
        out.append(AnyOf((ILike("product_name", search), ILike("product_sku", search))))
    low, high = _iso_date(params.get("date_from")), _iso_date(params.get("date_to"))
    if low or high:
        out.append(Range("date", low=low, high=high))
    return out
