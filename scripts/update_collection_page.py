"""Publish Commons media counts for every specimen of a collection catalog.

Reads the catalog CSV, resolves each taxon to its Commons category through
Wikidata, counts the files filed under those categories and replaces one
section of a wiki page with the rendered table.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Sequence, Tuple

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from jinja2 import TemplateError

from collection_coverage import (
    CATEGORY_BATCH_SIZE,
    CatalogFormatError,
    CategoryStatsFetcher,
    MediaWikiClient,
    MediaWikiConfig,
    PublishTarget,
    ServiceError,
    WikidataQueryClient,
    WikidataQueryConfig,
    read_catalog,
    run_pipeline,
)
from collection_coverage.config_utils import (
    DEFAULT_CREDENTIALS,
    MissingSecretError,
    ensure_real_secrets,
    load_config,
    resolve_secrets,
)
from collection_coverage.mediawiki import COMMONS_API_URL, DEFAULT_USER_AGENT
from collection_coverage.report import DEFAULT_EDIT_SUMMARY, load_template
from collection_coverage.wikidata import WDQ_API_URL

logger = logging.getLogger(__name__)

_DEFAULTS: Dict[str, Any] = {
    "commons_api_url": COMMONS_API_URL,
    "wdq_api_url": WDQ_API_URL,
    "user_agent": DEFAULT_USER_AGENT,
    "batch_size": CATEGORY_BATCH_SIZE,
    "max_workers": None,
    "timeout": 30.0,
    "summary": DEFAULT_EDIT_SUMMARY,
}

_REQUIRED = ("catalog", "template", "wiki_api_url", "page", "section")

_SETTING_KEYS = _REQUIRED + tuple(_DEFAULTS)


@dataclass
class RunSettings:
    catalog: Path
    template: Path
    wiki_api_url: str
    page: str
    section: str
    commons_api_url: str = COMMONS_API_URL
    wdq_api_url: str = WDQ_API_URL
    user_agent: str = DEFAULT_USER_AGENT
    batch_size: int = CATEGORY_BATCH_SIZE
    max_workers: int | None = None
    timeout: float | None = 30.0
    summary: str = DEFAULT_EDIT_SUMMARY


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("-f", "--catalog", type=Path, help="CSV file location.")
    parser.add_argument("-t", "--template", type=Path, help="Template file location.")
    parser.add_argument("-w", "--wiki-api-url", help="Wiki API URL.")
    parser.add_argument("-p", "--page", help="Page title.")
    parser.add_argument("-s", "--section", help="Section number.")
    parser.add_argument(
        "--config",
        type=Path,
        help="Optional YAML or JSON file providing defaults for any option and the credentials mapping",
    )
    parser.add_argument("--commons-api-url", help=f"Commons API URL (default: {COMMONS_API_URL}).")
    parser.add_argument("--wdq-api-url", help=f"Wikidata Query API URL (default: {WDQ_API_URL}).")
    parser.add_argument(
        "--batch-size",
        type=int,
        help=f"Categories per Commons request (default: {CATEGORY_BATCH_SIZE}).",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        help="Cap on concurrent Commons batches (default: one worker per batch).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Render the page section without logging in or publishing",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="With --dry-run, write the rendered text to this file instead of stdout.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO).",
    )
    return parser


def build_settings(args: argparse.Namespace, config: Mapping[str, Any]) -> RunSettings:
    """Merge CLI values over config file values over built-in defaults."""

    merged: Dict[str, Any] = dict(_DEFAULTS)
    for key in _SETTING_KEYS:
        value = config.get(key)
        if value is not None:
            merged[key] = value
    for key in _SETTING_KEYS:
        value = getattr(args, key, None)
        if value is not None:
            merged[key] = value

    missing = [key for key in _REQUIRED if merged.get(key) in (None, "")]
    if missing:
        raise ValueError("Missing required settings: " + ", ".join(missing))

    max_workers = merged.get("max_workers")
    timeout = merged.get("timeout")
    return RunSettings(
        catalog=Path(merged["catalog"]),
        template=Path(merged["template"]),
        wiki_api_url=str(merged["wiki_api_url"]),
        page=str(merged["page"]),
        section=str(merged["section"]),
        commons_api_url=str(merged["commons_api_url"]),
        wdq_api_url=str(merged["wdq_api_url"]),
        user_agent=str(merged["user_agent"]),
        batch_size=max(1, int(merged["batch_size"])),
        max_workers=int(max_workers) if max_workers is not None else None,
        timeout=float(timeout) if timeout is not None else None,
        summary=str(merged["summary"]),
    )


def _load_credentials(config: Mapping[str, Any], *, base_path: Path | None) -> Tuple[str, str]:
    descriptors = config.get("credentials")
    if not isinstance(descriptors, Mapping):
        descriptors = {name: dict(value) for name, value in DEFAULT_CREDENTIALS.items()}
    resolved = ensure_real_secrets(resolve_secrets(descriptors, base_path=base_path))
    login = resolved.get("bot_login")
    password = resolved.get("bot_password")
    if not login or not password:
        raise MissingSecretError("Both bot_login and bot_password credentials are required")
    return login, password


def _write_output(text: str, output: Path | None) -> None:
    if output is None:
        sys.stdout.write(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    logger.info("Wrote rendered section to %s", output)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO))

    config: Dict[str, Any] = {}
    base_path: Path | None = None
    if args.config:
        try:
            config = load_config(args.config)
        except (OSError, ValueError) as exc:
            logger.error("Failed to load configuration %s: %s", args.config, exc)
            return 1
        base_path = args.config.resolve().parent

    try:
        settings = build_settings(args, config)
    except ValueError as exc:
        parser.error(str(exc))

    try:
        template_text = load_template(settings.template)
    except OSError as exc:
        logger.error("Failed to read template %s: %s", settings.template, exc)
        return 1

    lookup = WikidataQueryClient(
        WikidataQueryConfig(
            base_url=settings.wdq_api_url,
            user_agent=settings.user_agent,
            timeout=settings.timeout,
        )
    )
    commons = MediaWikiClient(
        MediaWikiConfig(
            api_url=settings.commons_api_url,
            user_agent=settings.user_agent,
            timeout=settings.timeout,
        )
    )
    fetcher = CategoryStatsFetcher(
        commons,
        batch_size=settings.batch_size,
        max_workers=settings.max_workers,
    )

    if args.dry_run:
        try:
            result = run_pipeline(
                read_catalog(settings.catalog),
                template_text,
                lookup=lookup,
                statistics=fetcher,
            )
        except (CatalogFormatError, ServiceError, TemplateError) as exc:
            logger.error("Collection report aborted: %s", exc)
            return 1
        _write_output(result.text, args.output)
        return 0

    try:
        login, password = _load_credentials(config, base_path=base_path)
    except MissingSecretError as exc:
        logger.error("%s", exc)
        return 1

    wiki = MediaWikiClient(
        MediaWikiConfig(
            api_url=settings.wiki_api_url,
            user_agent=settings.user_agent,
            timeout=settings.timeout,
        )
    )
    try:
        wiki.login(login, password)
    except ServiceError as exc:
        logger.error("%s", exc)
        return 1

    try:
        result = run_pipeline(
            read_catalog(settings.catalog),
            template_text,
            lookup=lookup,
            statistics=fetcher,
            target=PublishTarget(
                publisher=wiki,
                page_title=settings.page,
                section=settings.section,
                summary=settings.summary,
            ),
        )
    except (CatalogFormatError, ServiceError, TemplateError) as exc:
        logger.error("Collection report aborted, page left untouched: %s", exc)
        return 1
    finally:
        logger.info("All done, logging out")
        try:
            wiki.logout()
        except ServiceError as exc:
            logger.warning("Logout from %s failed: %s", settings.wiki_api_url, exc)

    logger.info(
        "Published %d specimens (%d categories) to %s",
        len(result.specimens),
        result.category_count,
        settings.page,
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
