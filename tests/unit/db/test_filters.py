from __future__ import annotations

from datetime import date

from textile_ops.db.filters import AnyOf, Eq, ILike, In, IsNull, Range, compose_where, matches_all


def test_ilike_escapes_wildcards() -> None:
    _, params = ILike("business_name", "50%_off").compose()
    assert params == ["%50\\%\\_off%"]
    assert ILike("business_name", "50%_OFF").matches({"business_name": "Sale 50%_off now"})
    assert not ILike("business_name", "acme").matches({"business_name": None})


def test_range_bounds_are_inclusive_and_optional() -> None:
    r = Range("date", low=date(2026, 1, 1), high=date(2026, 1, 31))
    assert r.matches({"date": date(2026, 1, 31)})
    assert not r.matches({"date": date(2026, 2, 1)})
    assert Range("date", low=date(2026, 1, 1)).matches({"date": date(2030, 1, 1)})
    assert Range("date").compose()[1] == []


def test_in_case_insensitive() -> None:
    p = In("business_name", ["Acme Inc"], case_insensitive=True)
    assert p.compose()[1] == [["acme inc"]]
    assert p.matches({"business_name": "ACME INC"})
    assert not In("business_name", ["Acme Inc"]).matches({"business_name": "ACME INC"})
    assert In("email", []).compose()[1] == []


def test_any_of_and_compose_where_params_in_order() -> None:
    preds = [
        AnyOf((ILike("email", "x"), ILike("city", "y"))),
        Eq("state", "GJ"),
        IsNull("gst_number", is_null=False),
    ]
    _, params = compose_where(preds)
    assert params == ["%x%", "%y%", "GJ"]
    assert {f for p in preds for f in p.fields} == {"email", "city", "state", "gst_number"}

    row = {"email": "a@b.c", "city": "Surat (y)", "state": "GJ", "gst_number": "27AAPCU1234C1ZV"}
    assert matches_all(preds, row)
    assert not matches_all(preds, {**row, "gst_number": None})
    assert matches_all([], row)
    assert compose_where([])[1] == []
