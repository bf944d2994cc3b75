from __future__ import annotations

import pytest

from textile_ops.parsing.tokenizer import split_line, tokenize
from textile_ops.parsing.types import StructuralError


def test_split_line_trims_cells() -> None:
    assert split_line(" a , b,c ") == ["a", "b", "c"]


def test_split_line_quoted_delimiter_and_doubled_quote() -> None:
    """A comma inside quotes stays in the cell, `""` becomes one `"`."""
    line = '"Acme, ""Best"" Co.",ok@x.com'
    assert split_line(line) == ['Acme, "Best" Co.', "ok@x.com"]


def test_split_line_keeps_empty_cells() -> None:
    assert split_line("a,,c,") == ["a", "", "c", ""]


def test_split_line_custom_delimiter() -> None:
    assert split_line("a;b,c;d", delimiter=";") == ["a", "b,c", "d"]


def test_split_line_rejects_multichar_delimiter() -> None:
    with pytest.raises(ValueError):
        split_line("a,b", delimiter="::")


def test_tokenize_keeps_physical_line_numbers_across_blank_lines() -> None:
    text = "business_name,email\nAcme,a@x.com\n\n   \nBeta,b@x.com\n"
    rows = tokenize(text)
    assert [r.line_number for r in rows] == [1, 2, 5]
    assert rows[2].cells == ["Beta", "b@x.com"]


def test_tokenize_handles_crlf() -> None:
    rows = tokenize("a,b\r\n1,2\r\n")
    assert rows[1].cells == ["1", "2"]


@pytest.mark.parametrize("text", ["", "business_name,email\n", "\n\nbusiness_name\n\n"])
def test_tokenize_requires_header_and_one_data_row(text: str) -> None:
    with pytest.raises(StructuralError, match="at least a header and one data row"):
        tokenize(text)


def test_tokenize_splits_rows_on_newline_only() -> None:
    """Line separator, form feed and bare `\\r` inside a cell do not start a new row."""
    text = (
        "product_name,product_sku,product_category,product_description\n"
        "Shirt,SKU-1,Tops,soft\u2028cotton\x0cblend\rwash cold\n"
    )
    rows = tokenize(text)
    assert len(rows) == 2
    assert rows[1].line_number == 2
    assert rows[1].cells[3] == "soft\u2028cotton\x0cblend\rwash cold"
