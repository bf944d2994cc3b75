from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TableSpec:
    """Whitelisted table contract used for safe SQL generation.

    Notes:
    - `columns` are every column the store may read, write, filter or order by.
    - `system_columns` are filled by the database (`created_at`, serial ids, ...)
      and are never written by the bulk pipeline.
    """
    table_name: str
    columns: tuple[str, ...]
    system_columns: tuple[str, ...] = ("created_at", "updated_at")

    @property
    def all_columns(self) -> tuple[str, ...]:
        return self.columns + tuple(c for c in self.system_columns if c not in self.columns)


# wrap all table specs together, keyed by table name.
TABLE_SPECS: dict[str, TableSpec] = {
    "ledgers": TableSpec(
        table_name="ledgers",
        columns=(
            "ledger_id",
            "business_name",
            "contact_person_name",
            "mobile_number",
            "email",
            "address",
            "city",
            "district",
            "state",
            "country",
            "zip_code",
            "gst_number",
            "pan_number",
            "business_logo",
            "created_by",
        ),
    ),
    "profiles": TableSpec(
        table_name="profiles",
        columns=(
            "id",
            "email",
            "first_name",
            "last_name",
            "user_role",
            "user_status",
            "mobile",
            "address",
            "city",
            "state",
            "document_type",
            "document_number",
            "dob",
        ),
    ),
    "products": TableSpec(
        table_name="products",
        columns=(
            "product_name",
            "product_sku",
            "product_category",
            "product_sub_category",
            "product_size",
            "product_color",
            "product_description",
            "product_material",
            "product_brand",
            "product_country",
            "product_status",
            "product_qty",
            "wash_care",
            "manufacturing_cost",
            "refurbished_cost",
            "is_refurbished",
            "original_manufacturing_cost",
            "created_by",
        ),
        system_columns=("id", "created_at", "updated_at"),
    ),
    "inventory_items": TableSpec(
        table_name="inventory_items",
        columns=(
            "inventory_number",
            "challan_no",
            "date",
            "quality",
            "quantity",
            "product_name",
            "product_sku",
            "inventory_classification",
            "price_per_piece",
            "total_cost",
            "created_by",
        ),
        system_columns=("id", "created_at", "updated_at"),
    ),
}


def get_table_spec(table_name: str) -> TableSpec:
    try:
        return TABLE_SPECS[table_name]
    except KeyError:
        raise ValueError(f"Unknown table_name: {table_name}") from None
