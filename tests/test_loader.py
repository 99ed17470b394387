import io
import threading
from datetime import date, datetime

import pandas as pd
import pytest

from sleepnorm.domains.sleep import LoadCancelled, LoadReport, SchemaError, load_sleep_records

TODAY = date(2026, 10, 17)

ANN_NOTE = "Date: 3/5 Start time (x) PM 10:00 End time (x) AM 6:00 INTERRUPTIONS TOTAL #: 2"


def _raw_csv(rows, name_col="Name", details_col="Details", sep=","):
    df = pd.DataFrame(rows, columns=[name_col, details_col])
    return df.to_csv(index=False, sep=sep).encode("utf-8")


def test_single_line_note_yields_one_record():
    data = _raw_csv([("Ann", ANN_NOTE)])
    records = load_sleep_records(data, today=TODAY)
    assert len(records) == 1
    rec = records[0]
    assert rec.name == "Ann"
    assert rec.duration_hours == 8.0
    assert rec.interruptions == 2
    assert rec.start == datetime(2026, 3, 5, 22, 0)
    assert rec.end == datetime(2026, 3, 6, 6, 0)


def test_explicit_hours_minutes_override_derived_duration():
    note = "Date: 3/5/24\nStart time 10:00 (x) PM\nEnd time 5:00 (x) AM\nHours: 8\nMinutes: 30\n"
    records = load_sleep_records(_raw_csv([("Ann", note)]), today=TODAY)
    assert [r.duration_hours for r in records] == [8.5]


def test_bad_rows_dropped_without_aborting():
    rows = [
        ("Ann", "Date: 13/45\nStart time 10:00 PM\nEnd time 6:00 AM"),
        ("Ann", "   "),
        ("Ann", "Date: 3/7/24\nStart time 10:00\nEnd time 6:00"),
        ("Ann", "Date: 3/8/24\nStart time 11:00 PM\nEnd time 7:00 AM"),
    ]
    report = LoadReport()
    records = load_sleep_records(_raw_csv(rows), today=TODAY, report=report)
    assert len(records) == 1
    assert records[0].start == datetime(2024, 3, 8, 23, 0)
    assert report.schema == "raw"
    assert report.rows_read == 4
    assert report.kept == 1
    assert report.skipped == {"date": 1, "empty_note": 1, "clock": 1}


def test_blank_name_gets_placeholder():
    records = load_sleep_records(_raw_csv([("", ANN_NOTE)]), today=TODAY)
    assert records[0].name == "Individual"


def test_default_year_follows_today():
    records = load_sleep_records(_raw_csv([("Ann", ANN_NOTE)]), today=date(2031, 6, 1))
    assert records[0].start.year == 2031


def test_future_note_date_rolled_back():
    # 12/25 of the current year is after TODAY, so it belongs to last year
    note = "Date: 12/25\nStart time 9:30 PM\nEnd time 5:30 AM"
    records = load_sleep_records(_raw_csv([("Ann", note)]), today=TODAY)
    assert records[0].start == datetime(2025, 12, 25, 21, 30)
    assert records[0].end == datetime(2025, 12, 26, 5, 30)


def test_output_sorted_by_name_then_start():
    rows = [
        ("bob", "Date: 3/9/24\nStart time 10:00 PM\nEnd time 6:00 AM"),
        ("Ann", "Date: 3/9/24\nStart time 10:00 PM\nEnd time 6:00 AM"),
        ("Ann", "Date: 3/1/24\nStart time 10:00 PM\nEnd time 6:00 AM"),
    ]
    records = load_sleep_records(_raw_csv(rows), today=TODAY)
    assert [(r.name, r.start.day) for r in records] == [("Ann", 1), ("Ann", 9), ("bob", 9)]


@pytest.mark.parametrize("sep", [";", "\t", "|"])
def test_delimiter_detected(sep):
    data = _raw_csv([("Ann", ANN_NOTE)], name_col="Resident Name", details_col="Progress Note", sep=sep)
    report = LoadReport()
    records = load_sleep_records(data, today=TODAY, report=report)
    assert report.delimiter == sep
    assert len(records) == 1


def test_preprocessed_keeps_duration_column():
    text = (
        "Name,start_dt,end_dt,duration_hr,interruptions\n"
        "Bob,2024-01-01 22:00,2024-01-02 06:00,5.5,1\n"
        "Bob,garbage,2024-01-03 06:00,7,0\n"
        "Bob,2024-01-03 22:00,,6.25,\n"
    )
    report = LoadReport()
    records = load_sleep_records(text.encode(), today=TODAY, report=report)
    assert report.schema == "preprocessed"
    assert [r.duration_hours for r in records] == [5.5, 6.25]
    assert records[1].end is None
    assert report.skipped == {"start": 1}


def test_preprocessed_future_start_rolled_back():
    text = "Resident,start,duration\nCy,2029-05-01 23:00,7\n"
    records = load_sleep_records(text.encode(), today=TODAY)
    assert records[0].start == datetime(2026, 5, 1, 23, 0)


def test_unknown_header_is_fatal():
    with pytest.raises(SchemaError):
        load_sleep_records(b"foo,bar\n1,2\n", today=TODAY)


@pytest.mark.parametrize("data", [b"", b"\n", b"Name,Details\n"])
def test_empty_input_gives_empty_list(data):
    assert load_sleep_records(data, today=TODAY) == []


def test_bom_and_path_input(tmp_path):
    p = tmp_path / "notes.csv"
    p.write_bytes(b"\xef\xbb\xbf" + _raw_csv([("Ann", ANN_NOTE)]))
    records = load_sleep_records(p, today=TODAY)
    assert len(records) == 1


class _OneShotStream(io.BytesIO):
    def seekable(self):
        return False

    def seek(self, *args):
        raise io.UnsupportedOperation("seek")


def test_non_seekable_stream_buffered_once():
    stream = _OneShotStream(_raw_csv([("Ann", ANN_NOTE), ("Bea", ANN_NOTE)]))
    records = load_sleep_records(stream, today=TODAY)
    assert [r.name for r in records] == ["Ann", "Bea"]


def test_seekable_stream_rewound():
    stream = io.BytesIO(_raw_csv([("Ann", ANN_NOTE)]))
    stream.read()
    assert len(load_sleep_records(stream, today=TODAY)) == 1


def test_text_stream():
    stream = io.StringIO(_raw_csv([("Ann", ANN_NOTE)]).decode())
    assert len(load_sleep_records(stream, today=TODAY)) == 1


def test_cancellation_aborts_batch():
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(LoadCancelled):
        load_sleep_records(_raw_csv([("Ann", ANN_NOTE)]), today=TODAY, cancel=cancel)


def test_cancellation_mid_stream():
    class CancelAfter:
        def __init__(self, n):
            self.calls = 0
            self.n = n

        def is_set(self):
            self.calls += 1
            return self.calls > self.n

    rows = [("Ann", ANN_NOTE)] * 5
    token = CancelAfter(2)
    with pytest.raises(LoadCancelled):
        load_sleep_records(_raw_csv(rows), today=TODAY, cancel=token)
    assert token.calls == 3


def _note(day):
    return f"Date: 3/{day}/24 Start time (x) PM 10:00 End time (x) AM 6:00"


def test_trailing_delimiter_rows_all_kept():
    text = "Name,Details\n" + "".join(f'Ann,"{_note(d)}",\n' for d in (5, 6, 7))
    report = LoadReport()
    records = load_sleep_records(text.encode("utf-8"), today=TODAY, report=report)
    assert [r.start.day for r in records] == [5, 6, 7]
    assert report.dropped == 0


def test_row_with_extra_fields_only_affects_itself():
    text = f'Name,Details\nAnn,"{_note(5)}"\nBob,x,y,z\nCy,"{_note(6)}"\n'
    records = load_sleep_records(text.encode("utf-8"), today=TODAY)
    assert [r.name for r in records] == ["Ann", "Cy"]


def test_unterminated_quote_keeps_good_rows():
    text = "Name,Details\n" + "".join(f'Ann,"{_note(d)}"\n' for d in (5, 6, 7))
    text += 'Bob,"Date: 3/8/24 Start time\n'
    records = load_sleep_records(text.encode("utf-8"), today=TODAY)
    assert [(r.name, r.start.day) for r in records] == [("Ann", 5), ("Ann", 6), ("Ann", 7)]
