"""
Filter module for the Scholarship Aggregator pipeline.

This module decides whether a normalized scholarship is in scope for the
target population. A record qualifies when its title or description
mentions a locality keyword (Nigeria or one of its states and cities) or a
breadth keyword (international, African or developing-country
eligibility). The test favours recall: false positives are accepted.
"""

import re
from typing import Iterable, List, Optional

from scholarship_aggregator.models import ScholarshipRecord
from scholarship_aggregator.utils import RelevanceConfig, get_default_relevance_config, get_logger


# Module logger
logger = get_logger("filter")


def normalize_text_for_matching(text: Optional[str]) -> str:
    """
    Normalize text for case-insensitive keyword matching.

    Args:
        text: Text to normalize. Can be None or empty string.

    Returns:
        Lowercase text with normalized whitespace, or empty string if input is None/empty.
    """
    if not text:
        return ""
    return re.sub(r"\s+", " ", text.lower())


def contains_any_keyword(text: str, keywords: Iterable[str]) -> bool:
    """
    Check if text contains any of the specified keywords as a substring.

    Args:
        text: Text to search in.
        keywords: Keywords to look for.

    Returns:
        True if any keyword is found, False otherwise.
    """
    normalized = normalize_text_for_matching(text)
    if not normalized:
        return False

    return any(keyword.lower() in normalized for keyword in keywords if keyword)


def relevance_text(record: ScholarshipRecord) -> str:
    return f"{record.title} {record.description}"


def is_locality_relevant(record: ScholarshipRecord, config: Optional[RelevanceConfig] = None) -> bool:
    """Check whether the record names a place in the target population."""
    config = config or get_default_relevance_config()
    return contains_any_keyword(relevance_text(record), config.locality_keywords)


def is_breadth_relevant(record: ScholarshipRecord, config: Optional[RelevanceConfig] = None) -> bool:
    """Check whether the record signals international or development-oriented eligibility."""
    config = config or get_default_relevance_config()
    return contains_any_keyword(relevance_text(record), config.breadth_keywords)


def is_relevant(record: ScholarshipRecord, config: Optional[RelevanceConfig] = None) -> bool:
    """
    Decide whether a scholarship is in scope.

    Args:
        record: Normalized scholarship.
        config: Keyword sets to use. Defaults to the built-in Nigerian sets.

    Returns:
        True if a locality keyword or a breadth keyword appears in the
        title or description.
    """
    config = config or get_default_relevance_config()
    return is_locality_relevant(record, config) or is_breadth_relevant(record, config)


def filter_relevant(
    records: List[ScholarshipRecord],
    config: Optional[RelevanceConfig] = None
) -> List[ScholarshipRecord]:
    """
    Keep only relevant scholarships, preserving order.

    Args:
        records: Normalized scholarships.
        config: Keyword sets to use.

    Returns:
        The relevant records in their original order.
    """
    if not records:
        return []

    config = config or get_default_relevance_config()
    kept = [record for record in records if is_relevant(record, config)]

    logger.debug(f"Relevance filter: {len(kept)}/{len(records)} passed")

    return kept
