"""Tests for the uploaded-CSV reader."""
import pytest

from app.core.exceptions import InputError
from app.services.csv_reader import parse_csv


def test_first_row_is_header():
    content = b"Task Name,Cost Code\r\nDig,100\r\nPour,200\r\n"
    assert parse_csv(content) == [
        {"Task Name": "Dig", "Cost Code": "100"},
        {"Task Name": "Pour", "Cost Code": "200"},
    ]


def test_bom_blank_lines_and_header_whitespace():
    content = "\ufeff Equipment name ,Notes\n\n,\nBackhoe,yellow\n".encode("utf-8")
    assert parse_csv(content) == [{"Equipment name": "Backhoe", "Notes": "yellow"}]


def test_short_rows_and_unnamed_columns():
    content = b"Job Name,,Job Number\nHarbor,ignored\n"
    assert parse_csv(content) == [{"Job Name": "Harbor", "Job Number": ""}]


def test_header_only_file_has_no_rows():
    assert parse_csv(b"Task Name\r\n") == []


def test_non_utf8_is_rejected():
    with pytest.raises(InputError):
        parse_csv("Name\nJosé\n".encode("utf-16"))
