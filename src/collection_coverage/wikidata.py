"""Resolve taxon identifiers to Commons category names.

The resolver has to see the whole catalog before it can act: it groups the
specimens by Wikidata item, sends every distinct identifier to the Wikidata
Query (WDQ) service in one bulk request for the Commons category property, and
writes the resolved category onto each specimen of the matching group.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Sequence, Tuple

import requests

from .catalog import SpecimenRecord
from .mediawiki import DEFAULT_USER_AGENT, ServiceError, build_session, decode_payload

logger = logging.getLogger(__name__)

WDQ_API_URL = "https://wdq.wmflabs.org/api"
COMMONS_CATEGORY_PROPERTY = "373"
CATEGORY_NAMESPACE = "Category:"
ITEM_PREFIX = "Q"


def normalise_taxon_id(raw: str) -> str:
    value = raw.strip()
    if value.startswith(ITEM_PREFIX):
        value = value[len(ITEM_PREFIX):]
    return value


@dataclass
class TaxonGroups:
    """Specimens grouped by taxon identifier, identifiers kept in first-seen order."""

    groups: Dict[str, List[SpecimenRecord]] = field(default_factory=dict)
    identifiers: List[str] = field(default_factory=list)

    def add(self, record: SpecimenRecord) -> None:
        key = normalise_taxon_id(record.taxon_id)
        members = self.groups.get(key)
        if members is None:
            members = []
            self.groups[key] = members
            self.identifiers.append(key)
        members.append(record)

    def records(self) -> Iterator[SpecimenRecord]:
        for members in self.groups.values():
            yield from members

    def __len__(self) -> int:
        return sum(len(members) for members in self.groups.values())


def group_by_taxon(records: Iterable[SpecimenRecord]) -> TaxonGroups:
    """Drain ``records`` and group them by taxon identifier."""

    groups = TaxonGroups()
    for record in records:
        groups.add(record)
    return groups


@dataclass
class WikidataQueryConfig:
    base_url: str = WDQ_API_URL
    property_code: str = COMMONS_CATEGORY_PROPERTY
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float | None = 30.0


class WikidataQueryClient:
    """Bulk item property lookups against the WDQ API."""

    def __init__(self, config: WikidataQueryConfig | None = None, session: Any | None = None) -> None:
        self.config = config or WikidataQueryConfig()
        self.session = session if session is not None else build_session(self.config.user_agent)

    def lookup(self, identifiers: Sequence[str]) -> List[Tuple[str, str]]:
        """Return ``(identifier, value)`` pairs in the order the service reports them."""

        wanted = [identifier for identifier in identifiers if identifier]
        if not wanted:
            logger.info("No taxon identifiers to resolve")
            return []
        params = {
            "q": "ITEMS[" + ",".join(wanted) + "]",
            "props": self.config.property_code,
        }
        logger.info("Querying WDQ for %d items (property P%s)", len(wanted), self.config.property_code)
        try:
            response = self.session.get(self.config.base_url, params=params, timeout=self.config.timeout)
        except requests.RequestException as exc:
            raise ServiceError(f"WDQ request to {self.config.base_url} failed: {exc}") from exc
        payload = decode_payload(response, self.config.base_url)

        status = payload.get("status") or {}
        status_error = status.get("error") if isinstance(status, dict) else None
        if status_error != "OK":
            raise ServiceError(f"WDQ reported error: {status_error or 'missing status'}")

        logger.info("Handling answer from WDQ")
        rows = (payload.get("props") or {}).get(self.config.property_code) or []
        pairs: List[Tuple[str, str]] = []
        for row in rows:
            parsed = _parse_property_row(row)
            if parsed is None:
                logger.debug("Skipping malformed WDQ row %r", row)
                continue
            pairs.append(parsed)
        return pairs


def _parse_property_row(row: Any) -> Tuple[str, str] | None:
    if not isinstance(row, (list, tuple)) or len(row) < 3:
        return None
    raw_id, value = row[0], row[2]
    if isinstance(raw_id, float):
        if not raw_id.is_integer():
            return None
        raw_id = int(raw_id)
    if isinstance(raw_id, bool) or not isinstance(raw_id, (int, str)):
        return None
    if not isinstance(value, str) or not value:
        return None
    return normalise_taxon_id(str(raw_id)), value


def resolve_categories(groups: TaxonGroups, pairs: Iterable[Tuple[str, str]]) -> List[str]:
    """Write category names onto grouped specimens.

    Returns the category names in response order.  Identifiers without a
    matching pair keep an empty category name.
    """

    category_names: List[str] = []
    for identifier, name in pairs:
        category = CATEGORY_NAMESPACE + name
        for record in groups.groups.get(identifier, ()):
            record.category_name = category
        category_names.append(category)
    return category_names


__all__ = [
    "CATEGORY_NAMESPACE",
    "COMMONS_CATEGORY_PROPERTY",
    "TaxonGroups",
    "WDQ_API_URL",
    "WikidataQueryClient",
    "WikidataQueryConfig",
    "group_by_taxon",
    "normalise_taxon_id",
    "resolve_categories",
]
