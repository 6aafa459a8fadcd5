# tests/services/test_metadata.py
"""Tests for capture timestamp extraction."""

import os
from datetime import datetime
from pathlib import Path

from family_album.services.metadata import (
    TAKEN_AT_FORMAT,
    extract_taken_at,
    file_modified_time,
    parse_exif_datetime,
    parse_taken_at,
    standard_capture_time,
)


def test_reads_date_time_original(image_file) -> None:
    path = image_file("beach.jpg", 40, 30, taken="2023:06:15 14:30:00")
    assert extract_taken_at(path) == "2023-06-15 14:30:00"


def test_falls_back_to_alternate_date_tag(image_file) -> None:
    path = image_file("scan.jpg", 40, 30, datetime_tag="2019:12:24 18:05:09")
    assert standard_capture_time(path) is None
    assert extract_taken_at(path) == "2019-12-24 18:05:09"


def test_falls_back_to_modification_time(image_file) -> None:
    path = image_file("plain.png", 40, 30, "PNG")
    stamp = datetime(2021, 3, 4, 5, 6, 7).timestamp()
    os.utime(path, (stamp, stamp))
    assert extract_taken_at(path) == "2021-03-04 05:06:07"


def test_garbage_file_still_gets_a_timestamp(tmp_path: Path) -> None:
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"\xff\xd8\xff\xe1 this is not really a jpeg")
    value = extract_taken_at(path)
    assert value is not None
    datetime.strptime(value, TAKEN_AT_FORMAT)


def test_missing_file_returns_none(tmp_path: Path) -> None:
    assert extract_taken_at(tmp_path / "gone.jpg") is None
    assert file_modified_time(tmp_path / "gone.jpg") is None


def test_first_successful_strategy_wins(tmp_path: Path) -> None:
    calls: list[str] = []

    def empty(path: Path) -> None:
        calls.append("empty")
        return None

    def found(path: Path) -> datetime:
        calls.append("found")
        return datetime(2020, 1, 2, 3, 4, 5)

    def never(path: Path) -> datetime:
        calls.append("never")
        return datetime(1999, 1, 1)

    assert extract_taken_at(tmp_path / "x.jpg", (empty, found, never)) == "2020-01-02 03:04:05"
    assert calls == ["empty", "found"]


def test_parse_exif_datetime_variants() -> None:
    assert parse_exif_datetime("2023:06:15 14:30:00") == datetime(2023, 6, 15, 14, 30)
    assert parse_exif_datetime(b"2023:06:15 14:30:00\x00") == datetime(2023, 6, 15, 14, 30)
    assert parse_exif_datetime("2023-06-15T14:30:00+02:00") == datetime(2023, 6, 15, 14, 30)
    assert parse_exif_datetime("    ") is None
    assert parse_exif_datetime("0000:00:00 00:00:00") is None
    assert parse_exif_datetime(42) is None


def test_parse_taken_at_round_trips_the_stored_format() -> None:
    assert parse_taken_at("2023-06-15 14:30:00") == datetime(2023, 6, 15, 14, 30)
    assert parse_taken_at(None) is None
