"""Stage orchestration from catalog rows to a published wiki section."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Protocol, Sequence, Tuple

from .catalog import SpecimenRecord
from .commons import CategoryStats
from .merge import merge_category_stats
from .report import DEFAULT_EDIT_SUMMARY, SectionPublisher, publish_report, render_report, sort_specimens
from .wikidata import TaxonGroups, group_by_taxon, resolve_categories

logger = logging.getLogger(__name__)


class IdentifierLookup(Protocol):
    def lookup(self, identifiers: Sequence[str]) -> List[Tuple[str, str]]: ...


class StatisticsSource(Protocol):
    def fetch(self, names: Iterable[str]) -> Dict[str, CategoryStats]: ...


@dataclass
class PublishTarget:
    publisher: SectionPublisher
    page_title: str
    section: str
    summary: str = DEFAULT_EDIT_SUMMARY


@dataclass
class PipelineResult:
    specimens: List[SpecimenRecord]
    text: str
    category_count: int
    published: bool


def collect_specimens(
    records: Iterable[SpecimenRecord],
    lookup: IdentifierLookup,
    statistics: StatisticsSource,
) -> Tuple[TaxonGroups, List[SpecimenRecord], int]:
    """Resolve categories, fetch their statistics and merge them onto ``records``.

    Returns the groups, the merged specimens and the number of categories queried.
    """

    groups = group_by_taxon(records)
    logger.info(
        "Grouped %d specimens under %d taxon identifiers", len(groups), len(groups.identifiers)
    )
    pairs = lookup.lookup(groups.identifiers)
    category_names = resolve_categories(groups, pairs)
    index = statistics.fetch(category_names)
    merged = list(merge_category_stats(groups, index))
    return groups, merged, len(index)


def run_pipeline(
    records: Iterable[SpecimenRecord],
    template_text: str,
    *,
    lookup: IdentifierLookup,
    statistics: StatisticsSource,
    target: PublishTarget | None = None,
) -> PipelineResult:
    """Run every stage and publish the rendered text when ``target`` is given.

    Any stage error propagates before the publish step, so a failed run never
    touches the target page.
    """

    _, merged, category_count = collect_specimens(records, lookup, statistics)
    specimens = sort_specimens(merged)
    text = render_report(specimens, template_text)
    published = False
    if target is not None:
        publish_report(
            target.publisher,
            text,
            page_title=target.page_title,
            section=target.section,
            summary=target.summary,
        )
        published = True
    return PipelineResult(
        specimens=specimens,
        text=text,
        category_count=category_count,
        published=published,
    )


__all__ = [
    "IdentifierLookup",
    "PipelineResult",
    "PublishTarget",
    "StatisticsSource",
    "collect_specimens",
    "run_pipeline",
]
