"""Concurrent retrieval of Commons category statistics.

Category names are split into batches of at most :data:`CATEGORY_BATCH_SIZE`
titles (the Action API ceiling for ``titles``).  Each batch is queried in its
own worker thread and, for every category reporting subcategories, the same
worker runs a second paginated query summing the files of the direct
subcategories.  That nested query is sequential inside the batch, so a batch
takes longer the more subcategory-bearing categories it holds.

Workers never share a mutable index: each returns its own mapping and the
calling thread folds them together once all workers are done.  A shared
:class:`threading.Event` is checked before every outbound call so that the
first failing batch stops its siblings.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from threading import Event
from typing import Any, Callable, Dict, Iterable, Iterator, List, Sequence

from .mediawiki import MediaWikiClient

logger = logging.getLogger(__name__)

CATEGORY_BATCH_SIZE = 50


class FetchCancelled(RuntimeError):
    """Raised inside a worker when a sibling batch has already failed."""


@dataclass(frozen=True)
class CategoryStats:
    files: int = 0
    subcats: int = 0
    subcat_files: int = 0

    @property
    def total_files(self) -> int:
        return self.files + self.subcat_files


EMPTY_STATS = CategoryStats()


def batched(items: Sequence[str], size: int) -> Iterator[List[str]]:
    """Yield consecutive chunks of ``items`` holding at most ``size`` entries."""

    step = max(1, int(size))
    for start in range(0, len(items), step):
        yield list(items[start:start + step])


def _as_count(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        count = int(value)
    except (TypeError, ValueError):
        return 0
    return max(0, count)


def _iter_pages(payload: Mapping[str, Any]) -> Iterable[Mapping[str, Any]]:
    pages = (payload.get("query") or {}).get("pages") or []
    if isinstance(pages, Mapping):
        pages = pages.values()
    return [page for page in pages if isinstance(page, Mapping)]


class _LinkedEvent(Event):
    """Stop flag for one fetch that also reports set once ``parent`` is set."""

    def __init__(self, parent: Event | None = None) -> None:
        super().__init__()
        self.parent = parent

    def is_set(self) -> bool:
        return super().is_set() or (self.parent is not None and self.parent.is_set())


def _checkpoint(cancel: Event | None) -> Callable[[], None]:
    def _check() -> None:
        if cancel is not None and cancel.is_set():
            raise FetchCancelled("Category statistics fetch cancelled")

    return _check


class CategoryStatsFetcher:
    """Fetch :class:`CategoryStats` for many categories in parallel batches."""

    def __init__(
        self,
        client: MediaWikiClient,
        *,
        batch_size: int = CATEGORY_BATCH_SIZE,
        max_workers: int | None = None,
    ) -> None:
        self.client = client
        self.batch_size = max(1, int(batch_size))
        self.max_workers = max_workers

    def fetch(self, names: Iterable[str], *, cancel: Event | None = None) -> Dict[str, CategoryStats]:
        """Return statistics keyed by category name for every name in ``names``.

        Categories the API does not report are simply absent from the result.
        The first worker error is re-raised after all workers have stopped.
        Setting ``cancel`` from another thread stops the workers before their
        next request.
        """

        unique = list(dict.fromkeys(name for name in names if name))
        chunks = list(batched(unique, self.batch_size))
        if not chunks:
            return {}

        workers = len(chunks)
        if self.max_workers is not None:
            workers = max(1, min(int(self.max_workers), workers))

        stop = _LinkedEvent(cancel)
        index: Dict[str, CategoryStats] = {}
        first_error: BaseException | None = None
        cancelled: FetchCancelled | None = None

        def _run(chunk: List[str]) -> Dict[str, CategoryStats]:
            try:
                return self.fetch_chunk(chunk, cancel=stop)
            except Exception:
                stop.set()
                raise

        logger.info("Fetching statistics for %d categories in %d batches", len(unique), len(chunks))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(_run, chunk) for chunk in chunks]
            for future in as_completed(futures):
                try:
                    local = future.result()
                except FetchCancelled as exc:
                    if cancelled is None:
                        cancelled = exc
                    continue
                except Exception as exc:
                    if first_error is None:
                        first_error = exc
                    continue
                index.update(local)

        if first_error is not None:
            raise first_error
        if cancelled is not None:
            raise cancelled
        return index

    def fetch_chunk(self, titles: Sequence[str], *, cancel: Event | None = None) -> Dict[str, CategoryStats]:
        """Query ``categoryinfo`` for one batch of titles."""

        logger.info("Querying Commons for %d categories", len(titles))
        local: Dict[str, CategoryStats] = {}
        aliases: Dict[str, List[str]] = {}
        params = {"prop": "categoryinfo", "titles": "|".join(titles)}
        for payload in self.client.query(params, checkpoint=_checkpoint(cancel)):
            for entry in (payload.get("query") or {}).get("normalized") or []:
                if isinstance(entry, Mapping) and entry.get("from") and entry.get("to"):
                    aliases.setdefault(str(entry["to"]), []).append(str(entry["from"]))
            for page in _iter_pages(payload):
                title = page.get("title")
                if not title:
                    continue
                info = page.get("categoryinfo")
                if not isinstance(info, Mapping):
                    # continuation pages may repeat a title without its categoryinfo
                    if title in local:
                        continue
                    info = {}
                files = _as_count(info.get("files"))
                subcats = _as_count(info.get("subcats"))
                subcat_files = 0
                if subcats > 0:
                    subcat_files = self.count_subcategory_files(title, cancel=cancel)
                local[title] = CategoryStats(files=files, subcats=subcats, subcat_files=subcat_files)

        for target, sources in aliases.items():
            if target in local:
                for source in sources:
                    local.setdefault(source, local[target])
        return local

    def count_subcategory_files(self, title: str, *, cancel: Event | None = None) -> int:
        """Sum the file counts of the direct subcategories of ``title``."""

        logger.debug("Querying Commons for subcategories of %s", title)
        params = {
            "prop": "categoryinfo",
            "generator": "categorymembers",
            "gcmtitle": title,
            "gcmtype": "subcat",
            "gcmlimit": "max",
        }
        total = 0
        for payload in self.client.query(params, checkpoint=_checkpoint(cancel)):
            for page in _iter_pages(payload):
                info = page.get("categoryinfo")
                if isinstance(info, Mapping):
                    total += _as_count(info.get("files"))
        return total


__all__ = [
    "CATEGORY_BATCH_SIZE",
    "CategoryStats",
    "CategoryStatsFetcher",
    "EMPTY_STATS",
    "FetchCancelled",
    "batched",
]
