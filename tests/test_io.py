import io

import pandas as pd

from sleepnorm.domains.common.io import buffer_source, get_field, iter_rows, read_header, sniff_delimiter
from sleepnorm.lib.io_guards import write_csv


def test_sniff_delimiter():
    assert sniff_delimiter("a;b;c\n1;2;3") == ";"
    assert sniff_delimiter("a\tb\n1\t2") == "\t"
    assert sniff_delimiter("single\n1") == ","
    assert sniff_delimiter("") == ","


def test_read_header_trims_and_drops_blank():
    assert read_header(" Name , Details ,\n", ",") == ["Name", "Details"]
    assert read_header("", ",") == []


def test_iter_rows_multiline_quoted_field():
    text = 'Name,Details\nAnn,"line one\nline two"\nBob,x\n'
    rows = list(iter_rows(text, ",", chunksize=1))
    assert [r["Name"] for r in rows] == ["Ann", "Bob"]
    assert rows[0]["Details"] == "line one\nline two"


def test_iter_rows_tolerates_short_rows():
    rows = list(iter_rows("Name,Details,Extra\nAnn\nBob,x,y\n", ","))
    assert not get_field(rows[0], "Details")
    assert get_field(rows[1], "details") == "x"


def test_get_field_missing_column():
    assert get_field({"a": "1"}, None) is None
    assert get_field({"a": "1"}, "b") is None
    assert get_field({"A": "1"}, "a") == "1"


def test_buffer_source_variants(tmp_path):
    p = tmp_path / "x.csv"
    p.write_bytes(b"\xef\xbb\xbfName\n")
    assert buffer_source(p) == "Name\n"
    assert buffer_source(str(p)) == "Name\n"
    assert buffer_source(b"a,b") == "a,b"
    assert buffer_source(io.StringIO("\ufeffa,b")) == "a,b"


def test_write_csv_atomic(tmp_path):
    out = tmp_path / "nested" / "o.csv"
    write_csv(pd.DataFrame({"a": [1, 2]}), out)
    assert pd.read_csv(out)["a"].tolist() == [1, 2]
    assert not list(out.parent.glob("*.tmp.*"))


def test_iter_rows_trailing_delimiter_keeps_columns():
    rows = list(iter_rows("Name,Details\nAnn,note a,\nCy,note c,\n", ","))
    assert [(r["Name"], r["Details"]) for r in rows] == [("Ann", "note a"), ("Cy", "note c")]


def test_iter_rows_long_row_does_not_shift_others():
    rows = list(iter_rows("Name,Details\nAnn,a\nBob,x,y,z\nCy,c\n", ","))
    kept = {r["Name"]: r["Details"] for r in rows if r["Name"] != "Bob"}
    assert kept == {"Ann": "a", "Cy": "c"}


def test_iter_rows_unterminated_quote_keeps_earlier_rows():
    text = "Name,Details\n" + "".join(f"P{i},ok\n" for i in range(5)) + 'Bob,"cut off\n'
    rows = list(iter_rows(text, ",", chunksize=500))
    assert [r["Name"] for r in rows[:5]] == ["P0", "P1", "P2", "P3", "P4"]
