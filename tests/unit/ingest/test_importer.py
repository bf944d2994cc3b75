from __future__ import annotations

from decimal import Decimal

import pytest

from textile_ops.ingest.importer import import_csv, import_upload
from textile_ops.parsing.types import AuthorizationError, StructuralError

LEDGERS_CSV = (
    "business_name,email,city,gst_number\n"
    "Acme Inc,acme@x.com,Surat,27AAPCU1234C1ZV\n"
    "Beta Textiles,beta@x.com,Mumbai,\n"
    "Gamma Mills,gamma@x.com,Surat,\n"
)


def test_import_ledgers_persists_with_system_ids(store) -> None:
    summary = import_csv(store, "ledgers", LEDGERS_CSV, role="Admin", actor_id="u-1")

    assert summary.imported_count == 3
    assert summary.total_rows == 3
    assert summary.errors == []
    assert summary.message == "Successfully imported 3 of 3 ledgers"

    stored = store.tables["ledgers"]
    assert [r["business_name"] for r in stored] == ["Acme Inc", "Beta Textiles", "Gamma Mills"]
    assert all(r["ledger_id"].startswith("LDG-") for r in stored)
    assert all(r["created_by"] == "u-1" for r in stored)
    assert stored[1]["gst_number"] is None
    assert stored[0]["country"] == "India"


def test_second_import_of_same_file_skips_every_row(store) -> None:
    """Re-importing adds nothing and reports each row as a duplicate."""
    import_csv(store, "ledgers", LEDGERS_CSV, role="Admin")
    again = import_csv(store, "ledgers", LEDGERS_CSV, role="Admin")

    assert again.imported_count == 0
    assert again.skipped_count == 3
    assert again.failed_count == 0
    assert again.error_messages == [
        'Row 2: Business name "Acme Inc" already exists - skipping',
        'Row 3: Business name "Beta Textiles" already exists - skipping',
        'Row 4: Business name "Gamma Mills" already exists - skipping',
    ]
    assert len(store.tables["ledgers"]) == 3


def test_one_bad_row_does_not_affect_siblings(store) -> None:
    text = (
        "email,first_name,last_name,dob\n"
        "a@x.com,Ada,Lovelace,1990-01-02\n"
        "b@x.com,Bob,Builder,1990-13-40\n"
        "c@x.com,Cy,Twombly,\n"
        "d@x.com,Di,Prince,1985-05-05\n"
    )
    summary = import_csv(store, "users", text, role="Admin")

    assert summary.imported_count == 3
    assert summary.error_messages == ['Row 3: Invalid dob "1990-13-40" (expected YYYY-MM-DD)']
    assert [r["email"] for r in store.tables["profiles"]] == ["a@x.com", "c@x.com", "d@x.com"]


def test_bad_email_then_existing_business_name(store) -> None:
    store.seed("ledgers", {"ledger_id": "LDG-1", "business_name": "Acme Inc"})
    text = 'business_name,email\n"Acme Inc","bad-email"\n"Acme Inc","ok@x.com"\n'

    summary = import_csv(store, "ledgers", text, role="Admin")

    assert summary.imported_count == 0
    assert summary.error_messages == [
        "Row 2: Invalid email format: bad-email",
        'Row 3: Business name "Acme Inc" already exists - skipping',
    ]


def test_gst_number_is_normalized_before_insert(store) -> None:
    summary = import_csv(store, "ledgers", "business_name,gst_number\nAcme,27 aapcu1234c1zv\n", role="Admin")
    assert summary.imported_count == 1
    assert store.tables["ledgers"][0]["gst_number"] == "27AAPCU1234C1ZV"


def test_duplicates_within_one_file(store) -> None:
    text = "product_name,product_sku,product_category\nShirt,SKU-1,Tops\nShirt v2,SKU-1,Tops\n"
    summary = import_csv(store, "products", text)
    assert summary.imported_count == 1
    assert summary.error_messages == ['Row 3: SKU "SKU-1" already exists - skipping']


def test_existing_keys_fetched_in_one_query_per_key(store, monkeypatch) -> None:
    calls = []
    original = store.select

    def counting_select(table, predicates=(), **kw):
        calls.append(table)
        return original(table, predicates, **kw)

    monkeypatch.setattr(store, "select", counting_select)
    import_csv(store, "ledgers", LEDGERS_CSV, role="Admin")
    # business_name; ledger_id is blank in every row so it is not queried
    assert calls == ["ledgers"]


def test_role_checked_before_parsing(store) -> None:
    with pytest.raises(AuthorizationError):
        import_csv(store, "users", "not even csv", role="User")


def test_structural_errors(store) -> None:
    with pytest.raises(StructuralError, match="at least a header and one data row"):
        import_csv(store, "products", "product_name,product_sku,product_category\n")
    with pytest.raises(StructuralError, match="Missing required headers: product_category"):
        import_csv(store, "products", "product_name,product_sku\nShirt,SKU-1\n")
    with pytest.raises(StructuralError, match="Invalid operation"):
        import_csv(store, "products", "x\ny\n", operation="upsert")
    with pytest.raises(StructuralError, match="does not support the update operation"):
        import_csv(store, "ledgers", LEDGERS_CSV, operation="update", role="Admin")


def test_update_patches_inventory_by_sku(store) -> None:
    store.seed(
        "inventory_items",
        {
            "inventory_number": "INV-1",
            "product_name": "Shirt",
            "product_sku": "SKU-1",
            "quantity": 1,
            "inventory_classification": "unclassified",
        },
    )
    text = (
        "product_sku,product_name,quantity,classification,price_per_piece\n"
        "SKU-1,Shirt,4,good,2.50\n"
        "SKU-404,Ghost,1,bad,1\n"
    )
    summary = import_csv(store, "inventory", text, operation="update")

    assert summary.message == "Successfully updated 1 of 2 inventory"
    assert summary.error_messages == ['Row 3: No existing record with product_sku "SKU-404"']
    row = store.tables["inventory_items"][0]
    assert row["quantity"] == 4
    assert row["inventory_classification"] == "good"
    assert str(row["total_cost"]) == "10.00"
    assert row["inventory_number"] == "INV-1"
    assert len(store.tables["inventory_items"]) == 1


def test_update_leaves_blank_columns_untouched(store) -> None:
    """Columns missing from an update file keep their stored values, defaults are not written."""
    store.seed(
        "products",
        {
            "product_name": "Shirt",
            "product_sku": "SKU-1",
            "product_category": "Tops",
            "product_qty": 5,
            "manufacturing_cost": Decimal("120.00"),
            "product_status": "Discontinued",
            "is_refurbished": True,
        },
    )
    text = "product_sku,product_name,product_category\nSKU-1,Shirt XL,Tops\n"
    summary = import_csv(store, "products", text, operation="update")

    assert summary.errors == []
    row = store.tables["products"][0]
    assert row["product_name"] == "Shirt XL"
    assert row["product_qty"] == 5
    assert row["manufacturing_cost"] == Decimal("120.00")
    assert row["product_status"] == "Discontinued"
    assert row["is_refurbished"] is True


def test_inventory_update_without_price_keeps_total_cost(store) -> None:
    store.seed(
        "inventory_items",
        {
            "inventory_number": "INV-1",
            "product_name": "Shirt",
            "product_sku": "SKU-1",
            "quantity": 2,
            "inventory_classification": "good",
            "price_per_piece": Decimal("5.00"),
            "total_cost": Decimal("10.00"),
            "quality": "Premium",
        },
    )
    text = "product_sku,product_name,quantity,classification,total_cost\nSKU-1,Shirt,2,bad,999\n"
    summary = import_csv(store, "inventory", text, operation="update")

    assert summary.errors == []
    row = store.tables["inventory_items"][0]
    assert row["inventory_classification"] == "bad"
    assert row["price_per_piece"] == Decimal("5.00")
    assert row["total_cost"] == Decimal("10.00")
    assert row["quality"] == "Premium"


def test_import_upload_rejects_non_csv_before_reading(store) -> None:
    with pytest.raises(StructuralError, match="Only CSV files are allowed"):
        import_upload(store, "products", filename="products.txt", data=b"product_name\nx\n")
    assert store.insert_calls == []


def test_import_upload_strips_bom(store) -> None:
    data = "\ufeffproduct_name,product_sku,product_category\nShirt,SKU-1,Tops\n".encode("utf-8")
    summary = import_upload(store, "products", filename="Products.CSV", data=data)
    assert summary.imported_count == 1


def test_import_upload_empty_and_undecodable(store) -> None:
    with pytest.raises(StructuralError, match="No file provided"):
        import_upload(store, "products", filename="p.csv", data=b"")
    with pytest.raises(StructuralError, match="UTF-8"):
        import_upload(store, "products", filename="p.csv", data=b"\xff\xfe\x00a")


def test_placeholder_text_is_stored_verbatim(store) -> None:
    summary = import_csv(store, "ledgers", "business_name,city\nNull,N/A\n", role="Admin")
    assert summary.errors == []
    row = store.tables["ledgers"][0]
    assert row["business_name"] == "Null"
    assert row["city"] == "N/A"
