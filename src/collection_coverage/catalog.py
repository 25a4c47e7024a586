"""Catalog reader producing partial specimen records from the collection CSV."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence

logger = logging.getLogger(__name__)

CATALOG_FIELD_COUNT = 9
TREATMENT_SEPARATOR = " / "


class CatalogFormatError(ValueError):
    """Raised when the catalog cannot be read or a row is malformed."""


@dataclass
class SpecimenRecord:
    """One physical catalog entry, completed in place as the pipeline runs."""

    original_name: str
    vernacular_name: str = ""
    taxon_id: str = ""
    category_name: str = ""
    treatment: str = ""
    accession_number: str = ""
    specimen_category: str = ""
    file_count: int = 0
    subcat_count: int = 0
    subcat_file_count: int = 0
    total_files: int = 0


def parse_row(row: Sequence[str], line_number: int) -> SpecimenRecord:
    if len(row) != CATALOG_FIELD_COUNT:
        raise CatalogFormatError(
            f"Catalog line {line_number} has {len(row)} fields, expected {CATALOG_FIELD_COUNT}"
        )
    return SpecimenRecord(
        original_name=row[0],
        vernacular_name=row[1],
        treatment=row[2] + TREATMENT_SEPARATOR + row[3],
        accession_number=row[6],
        taxon_id=row[7],
        specimen_category=row[8],
    )


def read_catalog(path: Path) -> Iterator[SpecimenRecord]:
    """Yield specimen records from ``path`` in file order.

    Any malformed row, I/O failure or non UTF-8 byte raises
    :class:`CatalogFormatError`; rows already yielded are not rolled back,
    callers are expected to abort.
    """

    path = Path(path)
    logger.info("Opening catalog file %s", path)
    count = 0
    try:
        with path.open("r", encoding="utf-8", newline="") as handle:
            reader = csv.reader(handle)
            for row in reader:
                if not row:
                    continue
                yield parse_row(row, reader.line_num)
                count += 1
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise CatalogFormatError(f"Unable to read catalog {path}: {exc}") from exc
    logger.info("Done reading catalog (%d specimens)", count)


__all__ = [
    "CATALOG_FIELD_COUNT",
    "CatalogFormatError",
    "SpecimenRecord",
    "TREATMENT_SEPARATOR",
    "parse_row",
    "read_catalog",
]
