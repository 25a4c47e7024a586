"""Media coverage reporting for natural history collection catalogs."""

from .catalog import CatalogFormatError, SpecimenRecord, read_catalog
from .commons import CATEGORY_BATCH_SIZE, CategoryStats, CategoryStatsFetcher, FetchCancelled, batched
from .config_utils import MissingSecretError, ensure_real_secrets, load_config, resolve_secrets
from .mediawiki import MediaWikiClient, MediaWikiConfig, ServiceError
from .merge import merge_category_stats
from .pipeline import PipelineResult, PublishTarget, collect_specimens, run_pipeline
from .report import publish_report, render_report, sort_specimens
from .wikidata import (
    TaxonGroups,
    WikidataQueryClient,
    WikidataQueryConfig,
    group_by_taxon,
    resolve_categories,
)

__all__ = [
    "CATEGORY_BATCH_SIZE",
    "CatalogFormatError",
    "CategoryStats",
    "CategoryStatsFetcher",
    "FetchCancelled",
    "MediaWikiClient",
    "MediaWikiConfig",
    "MissingSecretError",
    "PipelineResult",
    "PublishTarget",
    "ServiceError",
    "SpecimenRecord",
    "TaxonGroups",
    "WikidataQueryClient",
    "WikidataQueryConfig",
    "batched",
    "collect_specimens",
    "ensure_real_secrets",
    "group_by_taxon",
    "load_config",
    "merge_category_stats",
    "publish_report",
    "read_catalog",
    "render_report",
    "resolve_categories",
    "resolve_secrets",
    "run_pipeline",
    "sort_specimens",
]
