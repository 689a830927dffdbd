"""
Extract module for the Scholarship Aggregator pipeline.

This module turns a fetched response body into candidate records. There
is one extractor per mechanism:

- Document: CSS selectors applied to an HTML page (BeautifulSoup)
- Feed: RSS/Atom entries (feedparser)
- API: JSON objects with aliased field names

Item-level failures are collected on the ExtractionResult. A body that
cannot be used at all raises, and the caller treats the whole source as
empty.
"""

import io
import json
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import feedparser
from bs4 import BeautifulSoup, Tag

from scholarship_aggregator.errors import ExtractionError
from scholarship_aggregator.models import (
    CandidateRecord,
    ExtractionResult,
    Mechanism,
    SelectorSet,
    SourceDescriptor,
)
from scholarship_aggregator.normalize import DEFAULT_DESCRIPTION, DEFAULT_TITLE
from scholarship_aggregator.utils import get_logger, normalize_url, sanitize_text


# Module logger
logger = get_logger("extract")

# Keys that may hold the list of objects in an API response, in priority order
API_CONTAINER_KEYS: Tuple[str, ...] = ("items", "scholarships", "data")

# Field name aliases for API objects, in priority order
API_FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "title": ("title", "name"),
    "description": ("description", "summary"),
    "amount": ("amount", "value"),
    "deadline": ("deadline", "due_date"),
    "url": ("url", "link", "source_url"),
}


# =============================================================================
# Document extraction
# =============================================================================


def select_containers(soup: BeautifulSoup, alternatives: Sequence[str]) -> List[Tag]:
    """
    Select container elements using the first alternative that matches.

    Args:
        soup: Parsed document.
        alternatives: Container selectors in priority order.

    Returns:
        Matching elements in document order, or an empty list.
    """
    for selector in alternatives:
        elements = soup.select(selector)
        if elements:
            logger.debug(f"Container selector '{selector}' matched {len(elements)} element(s)")
            return elements
    return []


def select_field_text(container: Tag, alternatives: Sequence[str]) -> str:
    """
    Resolve a field's text inside one container.

    Each alternative is tried in order; the trimmed text of its first
    matching element is returned if it is non-empty.

    Args:
        container: Container element to search under.
        alternatives: Field selectors in priority order.

    Returns:
        The field text, or an empty string if nothing matched.
    """
    for selector in alternatives:
        element = container.select_one(selector)
        if element is None:
            continue
        text = sanitize_text(element.get_text(" "))
        if text:
            return text
    return ""


def extract_link(container: Tag, base_url: str) -> Optional[str]:
    """Return the first usable link inside a container as an absolute URL."""
    for link in container.find_all("a", href=True):
        href = str(link["href"]).strip()
        if not href or href.startswith("#") or href.startswith("javascript:"):
            continue
        return normalize_url(href, base_url)
    return None


def extract_document_candidates(
    html: str,
    selectors: SelectorSet,
    page_url: str,
    source_name: str = ""
) -> ExtractionResult:
    """
    Extract candidates from an HTML page.

    Containers missing a title or a description are dropped silently, so
    the number of candidates never exceeds the number of containers.

    Args:
        html: Raw HTML.
        selectors: Selector set for this page.
        page_url: URL of the page, used for links and as the fallback URL.
        source_name: Name used in error records.

    Returns:
        ExtractionResult with candidates in document order.
    """
    result = ExtractionResult()
    if not html:
        logger.warning(f"Empty HTML content for {page_url}")
        return result

    soup = BeautifulSoup(html, "html.parser")
    containers = select_containers(soup, selectors.container)

    for index, container in enumerate(containers):
        try:
            title = select_field_text(container, selectors.title)
            description = select_field_text(container, selectors.description)
            if not title or not description:
                continue

            result.candidates.append(CandidateRecord(
                title=title,
                description=description,
                raw_amount=select_field_text(container, selectors.amount),
                raw_deadline=select_field_text(container, selectors.deadline),
                source_url=extract_link(container, page_url) or page_url,
            ))
        except Exception as e:
            logger.warning(f"Skipping item {index} from {page_url}: {e}")
            result.errors.append(ExtractionError(source_name or page_url, str(e), index))

    logger.info(
        f"Extracted {len(result.candidates)} candidate(s) from "
        f"{len(containers)} container(s) at {page_url}"
    )
    return result


def extract_document(body: str, source: SourceDescriptor) -> ExtractionResult:
    if source.selectors is None:
        raise ValueError(f"Document source '{source.name}' has no selectors")
    return extract_document_candidates(body, source.selectors, source.endpoint, source.name)


# =============================================================================
# Feed extraction
# =============================================================================


def html_to_text(value: Optional[str]) -> str:
    """Strip markup from feed HTML, leaving normalized plain text."""
    if not value:
        return ""
    if "<" not in value:
        return sanitize_text(value)
    return sanitize_text(BeautifulSoup(value, "html.parser").get_text(" "))


def _entry_content(entry: Any) -> str:
    contents = entry.get("content") or []
    for content in contents:
        value = content.get("value") if hasattr(content, "get") else None
        if value:
            return value
    return ""


def extract_feed_candidates(body: str, feed_url: str, source_name: str = "") -> ExtractionResult:
    """
    Extract one candidate per feed entry.

    Missing titles and descriptions are filled with defaults, so no entry
    is dropped here.

    Args:
        body: Raw feed XML.
        feed_url: Feed URL, the fallback link for entries without one.
        source_name: Name used in error records.

    Returns:
        ExtractionResult with candidates in feed order.
    """
    result = ExtractionResult()
    # A stream keeps feedparser from treating the body as a URL or file path.
    feed = feedparser.parse(io.BytesIO((body or "").encode("utf-8")))
    entries = getattr(feed, "entries", []) or []

    if getattr(feed, "bozo", False) and not entries:
        raise ValueError(f"Unparseable feed: {getattr(feed, 'bozo_exception', 'unknown error')}")

    for index, entry in enumerate(entries):
        try:
            content = _entry_content(entry)
            summary = entry.get("summary") or ""
            description = html_to_text(summary) or html_to_text(content)

            result.candidates.append(CandidateRecord(
                title=sanitize_text(entry.get("title")) or DEFAULT_TITLE,
                description=description or DEFAULT_DESCRIPTION,
                raw_amount=html_to_text(content or summary),
                raw_deadline=entry.get("published") or "",
                source_url=entry.get("link") or feed_url,
            ))
        except Exception as e:
            logger.warning(f"Skipping feed entry {index} from {feed_url}: {e}")
            result.errors.append(ExtractionError(source_name or feed_url, str(e), index))

    logger.info(f"Extracted {len(result.candidates)} candidate(s) from feed {feed_url}")
    return result


def extract_feed(body: str, source: SourceDescriptor) -> ExtractionResult:
    return extract_feed_candidates(body, source.endpoint, source.name)


# =============================================================================
# API extraction
# =============================================================================


def locate_api_items(payload: Any) -> List[Any]:
    """
    Find the list of objects in a JSON response.

    Args:
        payload: Decoded JSON.

    Returns:
        The top-level list, or the list under the first container key
        present, or an empty list.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in API_CONTAINER_KEYS:
            items = payload.get(key)
            if items:
                return items if isinstance(items, list) else []
    return []


def resolve_alias(item: Dict[str, Any], field_name: str) -> str:
    """Return the first non-empty value among a field's aliases, as text."""
    for key in API_FIELD_ALIASES[field_name]:
        value = item.get(key)
        if value is None or value == "":
            continue
        return str(value)
    return ""


def extract_api_candidates(payload: Any, endpoint: str, source_name: str = "") -> ExtractionResult:
    """
    Extract one candidate per JSON object.

    Entries that are not objects are skipped and recorded as errors.

    Args:
        payload: Decoded JSON response.
        endpoint: API URL, the fallback URL for objects without one.
        source_name: Name used in error records.

    Returns:
        ExtractionResult with candidates in response order.
    """
    result = ExtractionResult()
    items = locate_api_items(payload)

    for index, item in enumerate(items):
        if not isinstance(item, dict):
            result.errors.append(ExtractionError(
                source_name or endpoint,
                f"Expected an object, got {type(item).__name__}",
                index
            ))
            continue

        result.candidates.append(CandidateRecord(
            title=resolve_alias(item, "title") or DEFAULT_TITLE,
            description=resolve_alias(item, "description") or DEFAULT_DESCRIPTION,
            raw_amount=resolve_alias(item, "amount"),
            raw_deadline=resolve_alias(item, "deadline"),
            source_url=resolve_alias(item, "url") or endpoint,
        ))

    if result.errors:
        logger.warning(f"Skipped {len(result.errors)} non-object item(s) from {endpoint}")
    logger.info(f"Extracted {len(result.candidates)} candidate(s) from API {endpoint}")
    return result


def extract_api(body: str, source: SourceDescriptor) -> ExtractionResult:
    try:
        payload = json.loads(body)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Response is not valid JSON: {e}") from e
    return extract_api_candidates(payload, source.endpoint, source.name)


Extractor = Callable[[str, SourceDescriptor], ExtractionResult]

EXTRACTORS: Dict[Mechanism, Extractor] = {
    Mechanism.DOCUMENT: extract_document,
    Mechanism.FEED: extract_feed,
    Mechanism.API: extract_api,
}


def get_extractor(mechanism: Mechanism) -> Extractor:
    """Look up the extractor for a mechanism."""
    return EXTRACTORS[Mechanism(mechanism)]
