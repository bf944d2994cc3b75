from __future__ import annotations

from decimal import Decimal
from typing import Mapping

from textile_ops.config import get_settings
from textile_ops.db.filters import AnyOf, Eq, ILike, Predicate
from textile_ops.parsing.primitives import enum_parser, parse_bool, parse_decimal, parse_int
from textile_ops.parsing.schema import ExportColumn, FieldSpec, RecordSchema, UniqueKey

PRODUCT_STATUSES = ("Active", "Inactive", "Discontinued")


def _cost(name: str) -> FieldSpec:
    """Non-negative money column, blank -> 0.00."""
    return FieldSpec(
        name,
        lambda v: parse_decimal(v, field=name, non_negative=True),
        default=Decimal("0.00"),
    )


_PRODUCT_FIELDS = (
    FieldSpec("product_name", required=True),
    FieldSpec("product_sku", required=True),
    FieldSpec("product_category", required=True),
    FieldSpec("product_sub_category"),
    FieldSpec("product_size"),
    FieldSpec("product_color"),
    FieldSpec("product_description"),
    FieldSpec("product_material"),
    FieldSpec("product_brand", default=lambda: get_settings().default_brand),
    FieldSpec("product_country", default=lambda: get_settings().default_country),
    FieldSpec("product_status", enum_parser("product_status", PRODUCT_STATUSES), default="Active"),
    FieldSpec(
        "product_qty",
        lambda v: parse_int(v, field="product_qty", non_negative=True),
        default=0,
    ),
    FieldSpec("wash_care"),
    _cost("manufacturing_cost"),
    _cost("refurbished_cost"),
    FieldSpec("is_refurbished", lambda v: parse_bool(v, field="is_refurbished"), default=False),
    _cost("original_manufacturing_cost"),
)


PRODUCT_SCHEMA = RecordSchema(
    entity_name="products",
    table_name="products",
    reject_unknown_headers=False,
    uniqueness_keys=(UniqueKey("product_sku", "SKU"),),
    fields=_PRODUCT_FIELDS,
    update_key="product_sku",
    update_fields=(
        "product_name",
        "product_category",
        "product_status",
        "product_qty",
        "manufacturing_cost",
        "refurbished_cost",
        "is_refurbished",
        "original_manufacturing_cost",
    ),
    export_columns=tuple(ExportColumn(f.name, f.name) for f in _PRODUCT_FIELDS),
)


def product_export_filters(params: Mapping[str, str]) -> list[Predicate]:
    """`search` (name/sku), exact `category` and `status`."""
    out: list[Predicate] = []
    search = (params.get("search") or "").strip()
    if search:
        out.append(AnyOf((ILike("product_name", search), ILike("product_sku", search))))
    category = (params.get("category") or "").strip()
    if category and category != "all":
        out.append(Eq("product_category", category))
    status = (params.get("status") or "").strip()
    if status and status != "all":
        out.append(Eq("product_status", status))
    return out
