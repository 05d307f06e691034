"""Tests for generated filenames and collision handling."""

from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest

from docwrangler.ingestion import (
    build_filename,
    move_without_overwrite,
    next_free_path,
    parse_filename,
)
from docwrangler.state import DocumentMetadata


def _metadata(**overrides) -> DocumentMetadata:
    values = {"date": dt.date(2024, 3, 15), "title": "Electricity Bill", "addressees": ["Anna"]}
    values.update(overrides)
    return DocumentMetadata(**values)


def test_build_filename_lowercases_by_default() -> None:
    assert build_filename(_metadata()) == "2024-03-15 electricity bill [anna].pdf"


def test_build_filename_keeps_case_when_disabled() -> None:
    name = build_filename(_metadata(addressees=["Anna", "Ben"]), lowercase=False)

    assert name == "2024-03-15 Electricity Bill [Anna][Ben].pdf"


def test_build_filename_without_addressees_has_no_trailing_space() -> None:
    assert build_filename(_metadata(addressees=[])) == "2024-03-15 electricity bill.pdf"


def test_build_filename_replaces_reserved_characters() -> None:
    name = build_filename(
        _metadata(title='Q1/Q2 "report": a|b?*<>\\', addressees=[]), lowercase=False
    )

    assert name == "2024-03-15 Q1-Q2 -report-- a-b-----.pdf"


def test_next_free_path_appends_counter(tmp_path: Path) -> None:
    existing = {tmp_path / "doc.pdf", tmp_path / "doc (1).pdf"}

    result = next_free_path(tmp_path / "doc.pdf", lambda option: option in existing)

    assert result == tmp_path / "doc (2).pdf"


def test_next_free_path_returns_candidate_when_free(tmp_path: Path) -> None:
    assert next_free_path(tmp_path / "doc.pdf", lambda option: False) == tmp_path / "doc.pdf"


def test_parse_filename_recovers_metadata() -> None:
    metadata = parse_filename("2023-11-02 dentist invoice [anna][ben].pdf")

    assert metadata is not None
    assert metadata.date == dt.date(2023, 11, 2)
    assert metadata.title == "dentist invoice"
    assert metadata.addressees == ["anna", "ben"]
    assert metadata.category_hint == "uncategorized"


def test_parse_filename_without_addressees() -> None:
    metadata = parse_filename("2023-11-02 Dentist Invoice.PDF")

    assert metadata is not None
    assert metadata.title == "Dentist Invoice"
    assert metadata.addressees == []


def test_parse_filename_rejects_other_names() -> None:
    assert parse_filename("scan0001.pdf") is None
    assert parse_filename("2023-13-45 impossible date.pdf") is None


def test_move_without_overwrite_moves_into_new_folder(tmp_path: Path) -> None:
    source = tmp_path / "scan.pdf"
    source.write_bytes(b"scan")
    destination = tmp_path / "financial" / "doc.pdf"

    move_without_overwrite(source, destination)

    assert not source.exists()
    assert destination.read_bytes() == b"scan"


def test_move_without_overwrite_refuses_occupied_destination(tmp_path: Path) -> None:
    source = tmp_path / "scan.pdf"
    source.write_bytes(b"scan")
    destination = tmp_path / "doc.pdf"
    destination.write_bytes(b"existing")

    with pytest.raises(FileExistsError):
        move_without_overwrite(source, destination)

    assert source.read_bytes() == b"scan"
    assert destination.read_bytes() == b"existing"
