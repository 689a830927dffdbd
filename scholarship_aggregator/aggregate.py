"""
Aggregate module for the Scholarship Aggregator pipeline.

This module coordinates the per-source pipeline:
fetch → extract → normalize → filter

Sources run independently. A failed fetch or a broken response is
recorded on that source's SourceReport and contributes no records; the
remaining sources still run. Output order is registry order, then
extraction order within each source.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from scholarship_aggregator.errors import ConfigurationError, ExtractionError, FetchError
from scholarship_aggregator.extract import get_extractor
from scholarship_aggregator.fetch import FetchResult, fetch_url
from scholarship_aggregator.filter import filter_relevant
from scholarship_aggregator.models import (
    BatchResult,
    Mechanism,
    ScholarshipRecord,
    SelectorSet,
    SourceDescriptor,
    SourceReport,
)
from scholarship_aggregator.normalize import normalize_candidate
from scholarship_aggregator.registry import SourceRegistry
from scholarship_aggregator.utils import RelevanceConfig, get_default_relevance_config, get_logger


# Module logger
logger = get_logger("aggregate")

Fetcher = Callable[..., FetchResult]
SourceOutcome = Tuple[SourceReport, List[ScholarshipRecord]]


class Aggregator:
    """
    Runs sources from a registry through the pipeline.

    Args:
        registry: Source catalog to draw from.
        fetcher: Callable with the signature of fetch_url.
        max_workers: Sources fetched concurrently. 1 runs them sequentially.
        relevance: Keyword configuration for the relevance filter.
    """

    def __init__(
        self,
        registry: SourceRegistry,
        fetcher: Fetcher = fetch_url,
        max_workers: int = 1,
        relevance: Optional[RelevanceConfig] = None
    ):
        self.registry = registry
        self.fetcher = fetcher
        self.max_workers = max(1, int(max_workers))
        self.relevance = relevance or get_default_relevance_config()

    def run(self, category: str = "all") -> BatchResult:
        """
        Run every registered source of a category.

        Args:
            category: all, scrape, rss/feed or api.

        Returns:
            BatchResult with the relevant records of all sources.

        Raises:
            ConfigurationError: If the category is unknown.
        """
        sources = self.registry.by_category(category)
        logger.info(f"Running aggregation over {len(sources)} source(s) (category={category})")
        return self.run_sources(sources)

    def run_sources(self, sources: Sequence[SourceDescriptor]) -> BatchResult:
        """
        Run the given sources and merge their outcomes in order.

        Args:
            sources: Sources in the order their records should appear.

        Returns:
            BatchResult.
        """
        if self.max_workers > 1 and len(sources) > 1:
            workers = min(self.max_workers, len(sources))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="source") as pool:
                outcomes = list(pool.map(self.run_source, sources))
        else:
            outcomes = [self.run_source(source) for source in sources]

        batch = BatchResult()
        for report, records in outcomes:
            batch.reports.append(report)
            batch.scholarships.extend(records)

        failed = batch.failed_sources
        logger.info(
            f"Aggregation complete: {batch.count} scholarship(s) from "
            f"{len(sources) - len(failed)}/{len(sources)} source(s)"
        )
        if failed:
            logger.warning(f"Sources with errors: {failed}")

        return batch

    def run_source(self, source: SourceDescriptor) -> SourceOutcome:
        """
        Run one source through fetch, extract, normalize and filter.

        Never raises for fetch, extraction or per-record normalization
        problems; they are recorded on the returned report.

        Args:
            source: Source to run.

        Returns:
            Tuple of the source report and its relevant records.
        """
        report = SourceReport(source_name=source.name, mechanism=source.mechanism)

        try:
            fetched = self.fetcher(
                source.endpoint,
                headers=source.header_map or None,
                params=source.param_map or None
            )
        except Exception as e:
            report.fetch_error = FetchError(source.endpoint, f"Fetcher raised: {e}")
            logger.exception(f"Fetcher raised for {source.name}")
            return report, []

        if not fetched.success:
            report.fetch_error = fetched.error
            logger.warning(f"Fetch failed for {source.name}: {fetched.error}")
            return report, []

        try:
            extracted = get_extractor(source.mechanism)(fetched.body or "", source)
        except Exception as e:
            report.source_error = ExtractionError(source.name, str(e))
            logger.error(f"Extraction failed for {source.name}: {e}")
            return report, []

        report.item_errors = list(extracted.errors)
        report.candidates = len(extracted.candidates)

        records: List[ScholarshipRecord] = []
        for index, candidate in enumerate(extracted.candidates):
            try:
                records.append(normalize_candidate(candidate, source))
            except Exception as e:
                logger.exception(f"Normalization failed for item {index} of {source.name}")
                report.item_errors.append(ExtractionError(source.name, f"Normalization failed: {e}", index))

        kept = filter_relevant(records, self.relevance)
        report.kept = len(kept)

        logger.info(f"{source.name}: {report.kept}/{report.candidates} relevant scholarship(s)")
        return report, kept

    def run_by_name(self, name: str) -> BatchResult:
        """
        Run one registered source by exact name.

        Raises:
            ConfigurationError: If the name is missing or unknown.
        """
        if not name:
            raise ConfigurationError("Source name is required")
        return self.run_sources([self.registry.get(name)])

    def run_document(
        self,
        url: str,
        selectors: Optional[Union[SelectorSet, Mapping[str, Any]]] = None
    ) -> BatchResult:
        """
        Scrape one page with explicit or default selectors.

        Args:
            url: Page URL.
            selectors: SelectorSet or mapping. Defaults to the selectors of
                the first registered Document source.

        Raises:
            ConfigurationError: If the URL is missing or no selectors are available.
        """
        if not url:
            raise ConfigurationError("URL is required")

        if selectors is None:
            selector_set = self.registry.default_selectors()
        elif isinstance(selectors, SelectorSet):
            selector_set = selectors
        else:
            try:
                selector_set = SelectorSet.from_dict(selectors)
            except TypeError as e:
                raise ConfigurationError(f"Invalid selectors: {e}") from e

        if not selector_set.container:
            raise ConfigurationError("A container selector is required")

        source = SourceDescriptor.create(url, Mechanism.DOCUMENT, url, selectors=selector_set)
        return self.run_sources([source])

    def run_feed(self, feed_url: str) -> BatchResult:
        """
        Read one syndication feed.

        Raises:
            ConfigurationError: If the feed URL is missing.
        """
        if not feed_url:
            raise ConfigurationError("Feed URL is required")
        return self.run_sources([SourceDescriptor.create(feed_url, Mechanism.FEED, feed_url)])

    def run_api(
        self,
        api_url: str,
        headers: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None
    ) -> BatchResult:
        """
        Call one JSON API.

        Raises:
            ConfigurationError: If the API URL is missing.
        """
        if not api_url:
            raise ConfigurationError("API URL is required")
        source = SourceDescriptor.create(api_url, Mechanism.API, api_url, headers=headers, params=params)
        return self.run_sources([source])

    def run_config(self, source_config: Mapping[str, Any]) -> BatchResult:
        """
        Run an ad-hoc source described by a configuration mapping.

        The mapping uses the same keys as registry entries: url, type and
        selectors or headers/params. Without a type it is scraped.

        Raises:
            ConfigurationError: If the mapping has no URL.
        """
        if not source_config or not source_config.get("url"):
            raise ConfigurationError("Source configuration with URL is required")

        kind = str(source_config.get("type") or "scrape").lower()
        if kind in ("rss", "feed"):
            return self.run_feed(source_config["url"])
        if kind == "api":
            return self.run_api(
                source_config["url"],
                source_config.get("headers"),
                source_config.get("params")
            )
        return self.run_document(source_config["url"], source_config.get("selectors"))

    def status(self) -> Dict[str, Any]:
        """Summarize the registered sources."""
        counts = self.registry.counts()
        return {
            "total_sources": len(self.registry),
            "sources_by_type": counts,
            "max_workers": self.max_workers,
        }
