"""Join category statistics back onto grouped specimens."""

from __future__ import annotations

from typing import Iterator, Mapping

from .catalog import SpecimenRecord
from .commons import EMPTY_STATS, CategoryStats
from .wikidata import TaxonGroups


def apply_stats(record: SpecimenRecord, stats: CategoryStats) -> SpecimenRecord:
    record.file_count = stats.files
    record.subcat_count = stats.subcats
    record.subcat_file_count = stats.subcat_files
    record.total_files = record.file_count + record.subcat_file_count
    return record


def merge_category_stats(
    groups: TaxonGroups,
    index: Mapping[str, CategoryStats],
) -> Iterator[SpecimenRecord]:
    """Yield every grouped specimen completed with its category statistics.

    A specimen without a category name, or whose category is absent from
    ``index``, receives zero counts.
    """

    for members in groups.groups.values():
        for record in members:
            stats = index.get(record.category_name, EMPTY_STATS) if record.category_name else EMPTY_STATS
            yield apply_stats(record, stats)


__all__ = ["apply_stats", "merge_category_stats"]
