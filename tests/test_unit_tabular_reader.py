import io

import pytest

from paynotify.errors import MissingColumnsError, StructuralParseError
from paynotify.services.tabular_reader import (
    read_rows,
    read_rows_from_path,
    required_columns,
    rows_from_records,
)

from conftest import HEADER, make_csv


def test_required_columns_follow_configuration():
    assert required_columns() == HEADER
    assert required_columns({"recipient_id": "User", "amount": "Pay"}) == ["User", "Pay"]


def test_rows_keyed_by_header_and_whitespace_trimmed():
    data = make_csv([["U1", " Ana ", "1000", "0", "1"]], header=[" Slack User", "Name ", "Salary", "Absences", "Holidays Worked"])
    records = list(read_rows(io.BytesIO(data), HEADER))
    assert records == [
        {"Slack User": "U1", "Name": "Ana", "Salary": "1000", "Absences": "0", "Holidays Worked": "1"}
    ]


def test_missing_column_raises_before_any_row():
    data = make_csv([["U1", "Ana", "1000", "1"]], header=["Slack User", "Name", "Salary", "Holidays Worked"])
    gen = read_rows(io.BytesIO(data), HEADER)
    with pytest.raises(MissingColumnsError) as exc:
        next(gen)
    assert exc.value.missing == ["Absences"]
    assert "Absences" in str(exc.value)


def test_empty_file_is_structural_error():
    with pytest.raises(StructuralParseError):
        list(read_rows(io.BytesIO(b""), HEADER))


def test_blank_rows_skipped_and_short_rows_padded():
    data = b"Slack User,Name,Salary,Absences,Holidays Worked\n,,,,\n\nU2,Bia,2000\n"
    records = list(read_rows(io.BytesIO(data), HEADER))
    assert len(records) == 1
    assert records[0]["Slack User"] == "U2"
    assert records[0]["Absences"] == ""
    assert records[0]["Holidays Worked"] == ""


def test_utf8_bom_is_ignored():
    data = "\ufeff".encode("utf-8") + make_csv([["U1", "José", "10", "0", "0"]])
    records = list(read_rows(io.BytesIO(data), HEADER))
    assert records[0]["Name"] == "José"


def test_invalid_encoding_is_structural_error():
    data = b"Slack User,Name,Salary,Absences,Holidays Worked\nU1,\xff\xfe,10,0,0\n"
    with pytest.raises(StructuralParseError):
        list(read_rows(io.BytesIO(data), HEADER))


def test_stream_left_open_after_reading():
    stream = io.BytesIO(make_csv([["U1", "Ana", "1", "0", "0"]]))
    list(read_rows(stream, HEADER))
    assert not stream.closed


def test_tab_delimited():
    data = make_csv([["U1", "Ana", "1.000,50", "2", "0"]], delimiter="\t")
    records = list(read_rows(io.BytesIO(data), HEADER, delimiter="\t"))
    assert records[0]["Salary"] == "1.000,50"


def test_rows_from_records_maps_empty_cells():
    rows = rows_from_records([
        {"Slack User": "U1", "Name": "", "Salary": " 10 ", "Absences": "", "Holidays Worked": "3"}
    ])
    assert rows[0].recipient_id == "U1"
    assert rows[0].name is None
    assert rows[0].amount == "10"
    assert rows[0].absences == ""
    assert rows[0].holidays_worked == "3"


def test_read_rows_from_path(tmp_path):
    path = tmp_path / "pay.csv"
    path.write_bytes(make_csv([["U1", "Ana", "10", "0", "0"], ["U2", "Bia", "20", "1", "2"]]))
    rows = read_rows_from_path(path)
    assert [r.name for r in rows] == ["Ana", "Bia"]
