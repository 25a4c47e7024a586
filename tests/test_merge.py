from __future__ import annotations

from collection_coverage.catalog import SpecimenRecord
from collection_coverage.commons import CategoryStats
from collection_coverage.merge import merge_category_stats
from collection_coverage.wikidata import group_by_taxon


def test_merge_applies_stats_and_totals() -> None:
    records = [
        SpecimenRecord(original_name="a", taxon_id="Q1", category_name="Category:Foo"),
        SpecimenRecord(original_name="b", taxon_id="Q1", category_name="Category:Foo"),
        SpecimenRecord(original_name="c", taxon_id="Q2", category_name="Category:Bar"),
    ]
    index = {
        "Category:Foo": CategoryStats(files=3, subcats=1, subcat_files=2),
        "Category:Bar": CategoryStats(files=0, subcats=0, subcat_files=0),
    }

    merged = list(merge_category_stats(group_by_taxon(records), index))

    assert len(merged) == 3
    by_name = {record.original_name: record for record in merged}
    assert by_name["a"].total_files == 5
    assert by_name["b"].subcat_count == 1
    assert by_name["b"].subcat_file_count == 2
    assert by_name["c"].total_files == 0
    for record in merged:
        assert record.total_files == record.file_count + record.subcat_file_count
        assert record.file_count >= 0 and record.subcat_file_count >= 0


def test_merge_defaults_to_zero_for_unresolved_or_unknown_categories() -> None:
    records = [
        SpecimenRecord(original_name="unresolved", taxon_id="Q9"),
        SpecimenRecord(original_name="unknown", taxon_id="Q8", category_name="Category:Nowhere"),
    ]
    index = {"": CategoryStats(files=99)}

    merged = list(merge_category_stats(group_by_taxon(records), index))

    assert [record.total_files for record in merged] == [0, 0]
    assert [record.file_count for record in merged] == [0, 0]
