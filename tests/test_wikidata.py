from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from collection_coverage.catalog import SpecimenRecord
from collection_coverage.mediawiki import ServiceError
from collection_coverage.wikidata import (
    WikidataQueryClient,
    WikidataQueryConfig,
    group_by_taxon,
    normalise_taxon_id,
    resolve_categories,
)


class _DummyResponse:
    def __init__(self, payload: dict[str, Any]):
        self._payload = payload

    def json(self) -> dict[str, Any]:
        return self._payload

    def raise_for_status(self) -> None:  # pragma: no cover - nothing to raise in tests
        return None


def _record(name: str, taxon_id: str) -> SpecimenRecord:
    return SpecimenRecord(original_name=name, taxon_id=taxon_id)


def _client(payload: dict[str, Any], captured: dict[str, Any]) -> WikidataQueryClient:
    def fake_get(url, params=None, timeout=None):
        captured["url"] = url
        captured["params"] = params
        return _DummyResponse(payload)

    config = WikidataQueryConfig(base_url="https://wdq.test/api")
    return WikidataQueryClient(config, session=SimpleNamespace(get=fake_get))


def test_group_by_taxon_partitions_records() -> None:
    records = [
        _record("a", "Q1"),
        _record("b", "Q2"),
        _record("c", "Q1"),
        _record("d", ""),
        _record("e", "Q3"),
    ]
    groups = group_by_taxon(iter(records))

    assert groups.identifiers == ["1", "2", "", "3"]
    assert [record.original_name for record in groups.groups["1"]] == ["a", "c"]
    regrouped = list(groups.records())
    assert len(regrouped) == len(records) == len(groups)
    assert sorted(map(id, regrouped)) == sorted(map(id, records))


def test_normalise_taxon_id_strips_item_prefix() -> None:
    assert normalise_taxon_id("Q140") == "140"
    assert normalise_taxon_id(" 140 ") == "140"
    assert normalise_taxon_id("") == ""


def test_lookup_sends_bulk_query_and_parses_rows() -> None:
    payload = {
        "status": {"error": "OK", "items": 2},
        "items": [2, 1],
        "props": {"373": [[2.0, "string", "Vulpes vulpes"], [1, "string", "Panthera leo"], ["bad"]]},
    }
    captured: dict[str, Any] = {}
    client = _client(payload, captured)

    pairs = client.lookup(["1", "", "2"])

    assert captured["url"] == "https://wdq.test/api"
    assert captured["params"] == {"q": "ITEMS[1,2]", "props": "373"}
    assert pairs == [("2", "Vulpes vulpes"), ("1", "Panthera leo")]


def test_lookup_without_identifiers_skips_request() -> None:
    def fake_get(url, params=None, timeout=None):  # pragma: no cover - must not be reached
        raise AssertionError("unexpected request")

    client = WikidataQueryClient(session=SimpleNamespace(get=fake_get))
    assert client.lookup(["", ""]) == []


def test_lookup_raises_on_status_error() -> None:
    client = _client({"status": {"error": "Parse error"}}, {})
    with pytest.raises(ServiceError, match="Parse error"):
        client.lookup(["1"])


def test_resolve_categories_writes_every_group_member() -> None:
    records = [_record("a", "Q1"), _record("b", "Q2"), _record("c", "Q1")]
    groups = group_by_taxon(records)

    names = resolve_categories(groups, [("9", "Ignored"), ("1", "Foo")])

    assert names == ["Category:Ignored", "Category:Foo"]
    assert records[0].category_name == "Category:Foo"
    assert records[2].category_name == "Category:Foo"
    assert records[1].category_name == ""
