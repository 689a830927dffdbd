"""
Data model for the Scholarship Aggregator pipeline.

Records flow through the pipeline in this order:
SourceDescriptor -> CandidateRecord -> ScholarshipRecord -> BatchResult
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from scholarship_aggregator.errors import ExtractionError, FetchError


class Mechanism(str, Enum):
    """How a source is retrieved and extracted."""
    DOCUMENT = "scrape"
    FEED = "rss"
    API = "api"


class Provenance(str, Enum):
    """Which extractor produced a normalized record."""
    DOCUMENT_SCRAPE = "Web Scraping"
    FEED = "RSS Feed"
    API = "External API"


PROVENANCE_BY_MECHANISM: Dict[Mechanism, Provenance] = {
    Mechanism.DOCUMENT: Provenance.DOCUMENT_SCRAPE,
    Mechanism.FEED: Provenance.FEED,
    Mechanism.API: Provenance.API,
}


SelectorSpec = Union[str, Sequence[str]]


def split_selector_alternatives(spec: Optional[SelectorSpec]) -> Tuple[str, ...]:
    """
    Split a selector specification into prioritized alternatives.

    A string is split on commas that are not inside brackets, parentheses
    or quotes, so ``".title, h3"`` becomes ``(".title", "h3")`` while
    ``"a[title='x, y']"`` stays whole. A list is used as given.

    Args:
        spec: Comma-separated string, list of selectors, or None.

    Returns:
        Tuple of non-empty selector strings in priority order.

    Raises:
        TypeError: If spec is not a string or a list/tuple of strings.
    """
    if spec is None:
        return ()
    if not isinstance(spec, str):
        if not isinstance(spec, (list, tuple)):
            raise TypeError(f"Selector must be a string or a list of strings, got {type(spec).__name__}")
        if not all(isinstance(s, str) for s in spec):
            raise TypeError("Selector alternatives must be strings")
        return tuple(s.strip() for s in spec if s and s.strip())

    parts: List[str] = []
    depth = 0
    quote = ""
    current = []
    for char in spec:
        if quote:
            if char == quote:
                quote = ""
        elif char in "'\"":
            quote = char
        elif char in "([":
            depth += 1
        elif char in ")]":
            depth = max(depth - 1, 0)
        elif char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))

    return tuple(p.strip() for p in parts if p.strip())


@dataclass(frozen=True)
class SelectorSet:
    """
    CSS selectors used by the Document extractor.

    Every field holds alternatives in priority order. Strings and lists are
    accepted and stored as tuples.
    """
    container: Tuple[str, ...]
    title: Tuple[str, ...]
    amount: Tuple[str, ...]
    deadline: Tuple[str, ...]
    description: Tuple[str, ...]

    def __post_init__(self) -> None:
        for name in ("container", "title", "amount", "deadline", "description"):
            object.__setattr__(self, name, split_selector_alternatives(getattr(self, name)))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SelectorSet":
        """
        Build a SelectorSet from a mapping of field name to selectors.

        Raises:
            TypeError: If data is not a mapping or a field has the wrong type.
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"Selectors must be a mapping, got {type(data).__name__}")
        return cls(
            container=data.get("container") or (),
            title=data.get("title") or (),
            amount=data.get("amount") or (),
            deadline=data.get("deadline") or (),
            description=data.get("description") or (),
        )

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "container": list(self.container),
            "title": list(self.title),
            "amount": list(self.amount),
            "deadline": list(self.deadline),
            "description": list(self.description),
        }


@dataclass(frozen=True)
class SourceDescriptor:
    """
    Immutable description of one external source.

    Attributes:
        name: Unique source name used for lookup.
        mechanism: Fetch/extract mechanism.
        endpoint: URL to fetch.
        selectors: Selector set, required for DOCUMENT sources.
        headers: Extra request headers (API sources).
        params: Query parameters (API sources).
    """
    name: str
    mechanism: Mechanism
    endpoint: str
    selectors: Optional[SelectorSet] = None
    headers: Tuple[Tuple[str, str], ...] = ()
    params: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def create(
        cls,
        name: str,
        mechanism: Mechanism,
        endpoint: str,
        selectors: Optional[SelectorSet] = None,
        headers: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> "SourceDescriptor":
        """Build a descriptor from plain mappings, freezing them into tuples."""
        return cls(
            name=name,
            mechanism=Mechanism(mechanism),
            endpoint=endpoint,
            selectors=selectors,
            headers=tuple((str(k), str(v)) for k, v in (headers or {}).items()),
            params=tuple((str(k), str(v)) for k, v in (params or {}).items()),
        )

    @property
    def header_map(self) -> Dict[str, str]:
        return dict(self.headers)

    @property
    def param_map(self) -> Dict[str, str]:
        return dict(self.params)


@dataclass
class CandidateRecord:
    """Raw text extracted from a response, before normalization."""
    title: Optional[str] = None
    description: Optional[str] = None
    raw_amount: Optional[str] = None
    raw_deadline: Optional[str] = None
    source_url: Optional[str] = None


@dataclass(frozen=True)
class ScholarshipRecord:
    """
    A normalized scholarship, the pipeline's output unit.

    ``amount`` is 0 when no amount could be parsed and ``deadline`` is None
    when no date could be parsed.
    """
    title: str
    description: str
    amount: int
    deadline: Optional[date]
    source_url: str
    provenance: Provenance
    source_name: str = ""
    category: str = "Private"
    level: str = "Undergraduate"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON output."""
        # Imported here to avoid a cycle: normalize imports this module.
        from scholarship_aggregator.normalize import deadline_to_iso

        return {
            "title": self.title,
            "description": self.description,
            "amount": self.amount,
            "deadline": deadline_to_iso(self.deadline),
            "website": self.source_url,
            "source": self.provenance.value,
            "source_name": self.source_name,
            "category": self.category,
            "level": self.level,
        }


@dataclass
class ExtractionResult:
    """Candidates extracted from one response plus item-level failures."""
    candidates: List[CandidateRecord] = field(default_factory=list)
    errors: List[ExtractionError] = field(default_factory=list)


@dataclass
class SourceReport:
    """
    Outcome of running one source through the pipeline.

    Attributes:
        source_name: Name of the source.
        mechanism: Mechanism used.
        fetch_error: Set when the fetch failed.
        source_error: Set when the whole response could not be extracted.
        item_errors: Item-level extraction failures.
        candidates: Number of candidates extracted.
        kept: Number of records that passed the relevance filter.
    """
    source_name: str
    mechanism: Mechanism
    fetch_error: Optional[FetchError] = None
    source_error: Optional[ExtractionError] = None
    item_errors: List[ExtractionError] = field(default_factory=list)
    candidates: int = 0
    kept: int = 0

    @property
    def success(self) -> bool:
        return self.fetch_error is None and self.source_error is None


@dataclass
class BatchResult:
    """Ordered relevant records from one aggregation run."""
    scholarships: List[ScholarshipRecord] = field(default_factory=list)
    reports: List[SourceReport] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.scholarships)

    @property
    def failed_sources(self) -> List[str]:
        return [r.source_name for r in self.reports if not r.success]

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self.scholarships]
