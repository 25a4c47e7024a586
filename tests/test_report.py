from __future__ import annotations

from pathlib import Path

import pytest
from jinja2 import UndefinedError

from collection_coverage.catalog import SpecimenRecord
from collection_coverage.report import load_template, publish_report, render_report, sort_specimens

TABLE_TEMPLATE = """{| class="wikitable"
¤% for specimen in specimens %¤
|-
| {{taxon|¤{ specimen.original_name }¤}} || ¤{ specimen.total_files }¤
¤% endfor %¤
|}
"""


def _specimens() -> list[SpecimenRecord]:
    return [
        SpecimenRecord(original_name="Vulpes vulpes", total_files=4),
        SpecimenRecord(original_name="Bubo bubo", total_files=0),
        SpecimenRecord(original_name="Panthera leo", total_files=12),
    ]


def test_sort_specimens_orders_by_original_name() -> None:
    names = [record.original_name for record in sort_specimens(_specimens())]
    assert names == ["Bubo bubo", "Panthera leo", "Vulpes vulpes"]


def test_render_report_keeps_wiki_markup_and_sorts() -> None:
    text = render_report(_specimens(), TABLE_TEMPLATE)

    assert text == (
        '{| class="wikitable"\n'
        "|-\n"
        "| {{taxon|Bubo bubo}} || 0\n"
        "|-\n"
        "| {{taxon|Panthera leo}} || 12\n"
        "|-\n"
        "| {{taxon|Vulpes vulpes}} || 4\n"
        "|}\n"
    )


def test_render_report_is_idempotent() -> None:
    specimens = _specimens()
    assert render_report(specimens, TABLE_TEMPLATE) == render_report(specimens, TABLE_TEMPLATE)


def test_render_report_rejects_unknown_fields() -> None:
    with pytest.raises(UndefinedError):
        render_report(_specimens(), "¤% for s in specimens %¤¤{ s.nope }¤¤% endfor %¤")


def test_shipped_template_renders() -> None:
    template = load_template(Path(__file__).resolve().parents[1] / "templates" / "specimens_table.wiki")
    specimen = SpecimenRecord(
        original_name="Panthera leo",
        vernacular_name="Lion",
        category_name="Category:Panthera leo",
        file_count=3,
        subcat_file_count=2,
        total_files=5,
    )
    text = render_report([specimen], template)

    assert text.startswith('{| class="wikitable sortable"\n')
    assert "[[:commons:Category:Panthera leo|Category:Panthera leo]]" in text
    assert "|| 5\n" in text
    assert "¤" not in text
    assert text.endswith("|}\n")


class _RecordingPublisher:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def edit_section(self, title, section, text, *, summary, minor=False):
        self.calls.append((title, section, text, summary, minor))
        return {"result": "Success"}


def test_publish_report_sends_section_edit() -> None:
    publisher = _RecordingPublisher()
    publish_report(publisher, "body", page_title="Collections", section=3)

    assert publisher.calls == [("Collections", "3", "body", "Mise à jour", False)]
