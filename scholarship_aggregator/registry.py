"""
Source registry for the Scholarship Aggregator pipeline.

The registry is an immutable, ordered catalog of SourceDescriptors built
once at start-up and passed to the Aggregator. It can be loaded from:
1. SCHOLARSHIP_SOURCES_CONFIG environment variable (JSON string)
2. SCHOLARSHIP_SOURCES_CONFIG_PATH environment variable (file path)
3. A provided config path
4. The built-in default catalog
"""

import json
import os
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from scholarship_aggregator.errors import ConfigurationError
from scholarship_aggregator.models import Mechanism, SelectorSet, SourceDescriptor
from scholarship_aggregator.utils import get_env_var, get_logger, safe_read_json


# Module logger
logger = get_logger("registry")

DEFAULT_SOURCES_CONFIG_PATH = "config/sources.json"

# Category names accepted by Registry.by_category
CATEGORY_ALIASES: Dict[str, Tuple[Mechanism, ...]] = {
    "all": (Mechanism.DOCUMENT, Mechanism.FEED, Mechanism.API),
    "scrape": (Mechanism.DOCUMENT,),
    "document": (Mechanism.DOCUMENT,),
    "rss": (Mechanism.FEED,),
    "feed": (Mechanism.FEED,),
    "api": (Mechanism.API,),
}

DEFAULT_DOCUMENT_SOURCES: List[Dict[str, Any]] = [
    {
        "name": "Scholarships.com",
        "url": "https://www.scholarships.com/financial-aid/college-scholarships/scholarship-directory",
        "selectors": {
            "container": ".scholarship-item, .scholarship-card",
            "title": ".scholarship-title, .scholarship-name, h3, h4",
            "amount": ".scholarship-amount, .scholarship-value, .amount",
            "deadline": ".scholarship-deadline, .deadline, .due-date",
            "description": ".scholarship-description, .description, p",
        },
    },
    {
        "name": "Fastweb",
        "url": "https://www.fastweb.com/college-scholarships",
        "selectors": {
            "container": ".scholarship-card, .scholarship-item",
            "title": ".scholarship-name, .title, h3",
            "amount": ".scholarship-value, .amount, .value",
            "deadline": ".scholarship-deadline, .deadline",
            "description": ".scholarship-summary, .description",
        },
    },
    {
        "name": "Nigerian Scholarships",
        "url": "https://www.nigerianscholarships.com",
        "selectors": {
            "container": ".scholarship-listing, .scholarship-item, article",
            "title": ".scholarship-title, .title, h2, h3",
            "amount": ".scholarship-amount, .amount",
            "deadline": ".scholarship-deadline, .deadline",
            "description": ".scholarship-description, .description, .content",
        },
    },
]

DEFAULT_FEED_SOURCES: List[Dict[str, Any]] = [
    {"name": "Scholarships.com RSS", "url": "https://www.scholarships.com/rss/scholarships.xml"},
    {"name": "Fastweb RSS", "url": "https://www.fastweb.com/rss/scholarships.xml"},
]


class SourceRegistry:
    """Ordered, read-only collection of source descriptors."""

    def __init__(self, sources: Sequence[SourceDescriptor]):
        names = [source.name for source in sources]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate source names: {duplicates}")
        self._sources: Tuple[SourceDescriptor, ...] = tuple(sources)

    def __iter__(self) -> Iterator[SourceDescriptor]:
        return iter(self._sources)

    def __len__(self) -> int:
        return len(self._sources)

    def __repr__(self) -> str:
        return f"SourceRegistry({[s.name for s in self._sources]})"

    @property
    def sources(self) -> Tuple[SourceDescriptor, ...]:
        return self._sources

    def get(self, name: str) -> SourceDescriptor:
        """
        Look up a source by exact name.

        Raises:
            ConfigurationError: If no source has that name.
        """
        for source in self._sources:
            if source.name == name:
                return source
        raise ConfigurationError(f"Source not found: {name}", not_found=True)

    def by_mechanism(self, mechanism: Mechanism) -> List[SourceDescriptor]:
        return [s for s in self._sources if s.mechanism == mechanism]

    def by_category(self, category: str = "all") -> List[SourceDescriptor]:
        """
        Return sources of a category in registry order.

        Args:
            category: One of all, scrape/document, rss/feed, api.

        Raises:
            ConfigurationError: If the category is unknown.
        """
        mechanisms = CATEGORY_ALIASES.get((category or "all").strip().lower())
        if mechanisms is None:
            raise ConfigurationError(
                f"Unknown source category '{category}', expected one of {sorted(CATEGORY_ALIASES)}"
            )
        return [s for s in self._sources if s.mechanism in mechanisms]

    def default_selectors(self) -> SelectorSet:
        """Selectors of the first registered Document source."""
        documents = self.by_mechanism(Mechanism.DOCUMENT)
        if not documents or documents[0].selectors is None:
            raise ConfigurationError("No Document source is registered to supply default selectors")
        return documents[0].selectors

    def counts(self) -> Dict[str, int]:
        return {m.value: len(self.by_mechanism(m)) for m in Mechanism}


def parse_source_entry(entry: Dict[str, Any], default_mechanism: Optional[Mechanism] = None) -> Optional[SourceDescriptor]:
    """
    Parse a single source entry from configuration.

    Args:
        entry: Dictionary with name, url, type and mechanism parameters.
        default_mechanism: Mechanism used when the entry has no type.

    Returns:
        SourceDescriptor or None if the entry is invalid.
    """
    if not isinstance(entry, dict):
        return None

    name = str(entry.get("name", "")).strip()
    url = str(entry.get("url", "")).strip()
    if not name or not url:
        return None

    raw_type = str(entry.get("type") or "").strip().lower()
    if raw_type and raw_type != "all" and raw_type in CATEGORY_ALIASES:
        mechanism = CATEGORY_ALIASES[raw_type][0]
    elif not raw_type and default_mechanism is not None:
        mechanism = default_mechanism
    else:
        return None

    selectors = None
    if mechanism == Mechanism.DOCUMENT:
        raw_selectors = entry.get("selectors")
        if not isinstance(raw_selectors, dict):
            return None
        try:
            selectors = SelectorSet.from_dict(raw_selectors)
        except TypeError as e:
            logger.warning(f"Invalid selectors for source '{name}': {e}")
            return None
        if not selectors.container:
            return None

    headers = entry.get("headers") if isinstance(entry.get("headers"), dict) else None
    params = entry.get("params") if isinstance(entry.get("params"), dict) else None

    return SourceDescriptor.create(
        name=name,
        mechanism=mechanism,
        endpoint=url,
        selectors=selectors,
        headers=headers,
        params=params,
    )


def _default_api_sources() -> List[SourceDescriptor]:
    api_url = get_env_var("SCHOLARSHIP_API_URL", required=False)
    if not api_url:
        return []

    headers = {}
    api_key = get_env_var("SCHOLARSHIP_API_KEY", required=False)
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"

    return [SourceDescriptor.create("Scholarship API", Mechanism.API, api_url, headers=headers)]


def default_sources() -> List[SourceDescriptor]:
    """
    Build the built-in source catalog.

    Document sources come first, then feeds, then the API source when
    SCHOLARSHIP_API_URL is set.
    """
    sources: List[SourceDescriptor] = []
    for entry in DEFAULT_DOCUMENT_SOURCES:
        sources.append(parse_source_entry(entry, Mechanism.DOCUMENT))
    for entry in DEFAULT_FEED_SOURCES:
        sources.append(parse_source_entry(entry, Mechanism.FEED))
    sources.extend(_default_api_sources())
    return sources


def load_source_registry(config_path: Optional[str] = None) -> SourceRegistry:
    """
    Load the source catalog from configuration, falling back to defaults.

    The configuration document is either a list of entries or an object
    with a "sources" list. Each entry has "name", "url", "type" (scrape,
    rss or api) and, depending on the type, "selectors" or
    "headers"/"params". Invalid entries are skipped with a warning.

    Args:
        config_path: Optional path to the configuration file.

    Returns:
        SourceRegistry instance.
    """
    data = None

    env_config = os.environ.get("SCHOLARSHIP_SOURCES_CONFIG", "").strip()
    if env_config:
        try:
            data = json.loads(env_config)
            logger.info("Loaded sources from SCHOLARSHIP_SOURCES_CONFIG environment variable")
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in SCHOLARSHIP_SOURCES_CONFIG: {e}")

    if data is None:
        env_path = os.environ.get("SCHOLARSHIP_SOURCES_CONFIG_PATH", "").strip()
        file_path = env_path or config_path or DEFAULT_SOURCES_CONFIG_PATH
        data = safe_read_json(file_path, default=None)
        if data is not None:
            logger.info(f"Loaded sources from {file_path}")

    entries = data.get("sources", []) if isinstance(data, dict) else data
    sources: List[SourceDescriptor] = []
    seen = set()

    for entry in entries if isinstance(entries, list) else []:
        source = parse_source_entry(entry)
        if source is None:
            logger.warning(f"Skipping invalid source entry: {entry!r}")
            continue
        if source.name in seen:
            logger.warning(f"Skipping duplicate source name: {source.name}")
            continue
        seen.add(source.name)
        sources.append(source)

    if not sources:
        logger.debug("No sources configured, using default catalog")
        sources = default_sources()

    registry = SourceRegistry(sources)
    logger.info(f"Registered {len(registry)} source(s): {registry.counts()}")
    return registry
