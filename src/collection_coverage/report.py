"""Render the specimen table and publish it to the target wiki.

Templates are Jinja2 documents with non-default delimiters so that wiki
markup such as ``{{Template}}`` or ``{| class="wikitable"`` can be written
verbatim:

* ``¤{ specimen.original_name }¤`` prints a value,
* ``¤% for specimen in specimens %¤ ... ¤% endfor %¤`` controls flow,
* ``¤# note #¤`` is a comment.

The newline following a block tag is dropped, so block tags can sit on their
own lines without leaving blank rows in the table.

The sorted specimens are exposed to the template as ``specimens``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, List, Protocol

from jinja2 import Environment, StrictUndefined, Template

from .catalog import SpecimenRecord

logger = logging.getLogger(__name__)

VARIABLE_START = "¤{"
VARIABLE_END = "}¤"
BLOCK_START = "¤%"
BLOCK_END = "%¤"
COMMENT_START = "¤#"
COMMENT_END = "#¤"

DEFAULT_EDIT_SUMMARY = "Mise à jour"


class SectionPublisher(Protocol):
    def edit_section(
        self,
        title: str,
        section: str,
        text: str,
        *,
        summary: str,
        minor: bool = False,
    ) -> Any: ...


def _environment() -> Environment:
    return Environment(
        variable_start_string=VARIABLE_START,
        variable_end_string=VARIABLE_END,
        block_start_string=BLOCK_START,
        block_end_string=BLOCK_END,
        comment_start_string=COMMENT_START,
        comment_end_string=COMMENT_END,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        autoescape=False,
    )


def build_template(text: str) -> Template:
    return _environment().from_string(text)


def load_template(path: Path) -> str:
    return Path(path).read_text(encoding="utf-8")


def sort_specimens(records: Iterable[SpecimenRecord]) -> List[SpecimenRecord]:
    return sorted(records, key=lambda record: record.original_name)


def render_report(records: Iterable[SpecimenRecord], template_text: str) -> str:
    """Buffer ``records``, sort them by original name and render the template."""

    specimens = sort_specimens(records)
    logger.info("Rendering %d specimens", len(specimens))
    return build_template(template_text).render(specimens=specimens)


def publish_report(
    publisher: SectionPublisher,
    text: str,
    *,
    page_title: str,
    section: str,
    summary: str = DEFAULT_EDIT_SUMMARY,
) -> Any:
    logger.info("About to update page %s (section %s)", page_title, section)
    return publisher.edit_section(page_title, str(section), text, summary=summary, minor=False)


__all__ = [
    "DEFAULT_EDIT_SUMMARY",
    "SectionPublisher",
    "build_template",
    "load_template",
    "publish_report",
    "render_report",
    "sort_specimens",
]
