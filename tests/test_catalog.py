from __future__ import annotations

from pathlib import Path

import pytest

from collection_coverage.catalog import CatalogFormatError, SpecimenRecord, parse_row, read_catalog


def _write_catalog(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "catalog.csv"
    path.write_text(text, encoding="utf-8")
    return path


def test_parse_row_maps_used_columns() -> None:
    row = ["Panthera leo", "Lion", "Naturalisé", "monté", "x", "y", "MHN-0001", "Q140", "Mammifères"]
    record = parse_row(row, 1)
    assert record == SpecimenRecord(
        original_name="Panthera leo",
        vernacular_name="Lion",
        taxon_id="Q140",
        treatment="Naturalisé / monté",
        accession_number="MHN-0001",
        specimen_category="Mammifères",
    )
    assert record.category_name == ""
    assert record.total_files == 0


def test_read_catalog_yields_records_in_file_order(tmp_path: Path) -> None:
    path = _write_catalog(
        tmp_path,
        "Vulpes vulpes,Renard,A,B,,,MHN-2,Q8332,Mammifères\n"
        "\n"
        '"Bubo bubo, juv.",Grand-duc,C,D,,,MHN-3,Q25333,Oiseaux\n',
    )
    records = list(read_catalog(path))
    assert [record.original_name for record in records] == ["Vulpes vulpes", "Bubo bubo, juv."]
    assert records[1].treatment == "C / D"
    assert records[1].taxon_id == "Q25333"


def test_read_catalog_is_lazy(tmp_path: Path) -> None:
    path = _write_catalog(
        tmp_path,
        "A,a,t,c,,,1,Q1,cat\n"
        "B,b,t,c\n",
    )
    records = read_catalog(path)
    first = next(records)
    assert first.original_name == "A"
    with pytest.raises(CatalogFormatError, match="line 2 has 4 fields"):
        next(records)


def test_read_catalog_rejects_extra_fields(tmp_path: Path) -> None:
    path = _write_catalog(tmp_path, "A,a,t,c,,,1,Q1,cat,extra\n")
    with pytest.raises(CatalogFormatError):
        list(read_catalog(path))


def test_read_catalog_missing_file_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(CatalogFormatError) as excinfo:
        list(read_catalog(tmp_path / "missing.csv"))
    assert isinstance(excinfo.value.__cause__, OSError)


def test_read_catalog_rejects_non_utf8_bytes(tmp_path: Path) -> None:
    path = tmp_path / "catalog.csv"
    path.write_bytes(b"Panthera leo,Lion,N,M,,,A-1,Q140,Mamm\xe8res\n")
    with pytest.raises(CatalogFormatError, match="Unable to read catalog") as excinfo:
        list(read_catalog(path))
    assert isinstance(excinfo.value.__cause__, UnicodeDecodeError)
