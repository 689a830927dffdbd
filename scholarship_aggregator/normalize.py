"""
Normalize module for the Scholarship Aggregator pipeline.

Turns raw candidate text into typed values. Every function here is total:
malformed input yields 0 or None instead of an exception.
"""

import calendar
import re
from datetime import date, datetime, time
from typing import Callable, List, Optional, Tuple

from scholarship_aggregator.models import (
    PROVENANCE_BY_MECHANISM,
    CandidateRecord,
    ScholarshipRecord,
    SourceDescriptor,
)
from scholarship_aggregator.utils import sanitize_text


DEFAULT_TITLE = "Untitled Scholarship"
DEFAULT_DESCRIPTION = "No description available"

CURRENCY_PATTERN = re.compile(r"[$€£¥₦,]")
DIGIT_RUN_PATTERN = re.compile(r"\d+")

# Longer digit runs are noise, not amounts
MAX_AMOUNT_DIGITS = 15

MONTHS = {
    name.lower(): index
    for index, name in enumerate(calendar.month_name)
    if name
}
MONTHS.update({
    name.lower(): index
    for index, name in enumerate(calendar.month_abbr)
    if name
})
MONTHS["sept"] = 9


def _month_day_year(match: "re.Match[str]") -> Optional[Tuple[int, int, int]]:
    return int(match.group(3)), int(match.group(1)), int(match.group(2))


def _year_month_day(match: "re.Match[str]") -> Optional[Tuple[int, int, int]]:
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


def _named_month(match: "re.Match[str]") -> Optional[Tuple[int, int, int]]:
    month = MONTHS.get(match.group(1).lower())
    if month is None:
        return None
    return int(match.group(3)), month, int(match.group(2))


# Tried in order; the first pattern yielding a valid date wins.
DEADLINE_PATTERNS: List[Tuple["re.Pattern[str]", Callable[["re.Match[str]"], Optional[Tuple[int, int, int]]]]] = [
    (re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})"), _month_day_year),
    (re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})"), _month_day_year),
    (re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})"), _year_month_day),
    (re.compile(r"(?<![A-Za-z])([A-Za-z]+)\s+(\d{1,2}),?\s+(\d{4})"), _named_month),
]


def parse_amount(text: Optional[str]) -> int:
    """
    Parse a monetary amount out of free text.

    Currency symbols and thousands separators are removed, then the last
    run of digits is taken, so ranges like "$1,000 - $5,000" resolve to
    their upper bound. A run longer than MAX_AMOUNT_DIGITS is treated as
    unparseable.

    Args:
        text: Raw amount text, possibly None.

    Returns:
        Non-negative integer amount, 0 when nothing could be parsed.
    """
    if not text:
        return 0

    cleaned = CURRENCY_PATTERN.sub("", str(text))
    runs = DIGIT_RUN_PATTERN.findall(cleaned)
    if not runs:
        return 0

    last = runs[-1]
    if len(last) > MAX_AMOUNT_DIGITS:
        return 0
    return int(last)


def _build_date(year: int, month: int, day: int) -> Optional[date]:
    if year <= 2000 or not 1 <= month <= 12 or day < 1:
        return None
    if day > calendar.monthrange(year, month)[1]:
        return None
    return date(year, month, day)


def parse_deadline(text: Optional[str]) -> Optional[date]:
    """
    Parse a deadline date out of free text.

    Patterns are tried in a fixed order: M/D/YYYY, M-D-YYYY, YYYY-M-D and
    "MonthName D, YYYY". Only the first match of each pattern is
    considered; if it fails validation (unknown month name, month outside
    1-12, day outside the month, year not after 2000) the next pattern is
    tried.

    Args:
        text: Raw deadline text, possibly None.

    Returns:
        The parsed date, or None.
    """
    if not text:
        return None

    text = str(text)
    for pattern, resolve in DEADLINE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        parts = resolve(match)
        if parts is None:
            continue
        parsed = _build_date(*parts)
        if parsed is not None:
            return parsed

    return None


def deadline_to_iso(deadline: Optional[date]) -> Optional[str]:
    """Serialize a deadline as an ISO-8601 instant at local midnight."""
    if deadline is None:
        return None
    return datetime.combine(deadline, time.min).astimezone().isoformat()


def categorize(title: str, description: str) -> str:
    """Classify the sponsor type from keywords in the text."""
    text = f"{title} {description}".lower()

    if any(kw in text for kw in ("government", "federal", "state")):
        return "Government"
    if any(kw in text for kw in ("corporate", "company", "foundation")):
        return "Corporate"
    if any(kw in text for kw in ("university", "college", "institution")):
        return "Academic"
    return "Private"


def determine_level(title: str, description: str) -> str:
    """Classify the study level from keywords in the text, defaulting to Undergraduate."""
    text = f"{title} {description}".lower()

    if any(kw in text for kw in ("undergraduate", "bachelor", "first degree")):
        return "Undergraduate"
    if any(kw in text for kw in ("postgraduate", "master", "phd", "doctorate")):
        return "Postgraduate"
    if any(kw in text for kw in ("secondary", "high school")):
        return "Secondary"
    return "Undergraduate"


def normalize_candidate(candidate: CandidateRecord, source: SourceDescriptor) -> ScholarshipRecord:
    """
    Build a ScholarshipRecord from one candidate.

    Args:
        candidate: Raw candidate from an extractor.
        source: Descriptor of the source the candidate came from.

    Returns:
        Normalized ScholarshipRecord.
    """
    title = sanitize_text(candidate.title) or DEFAULT_TITLE
    description = sanitize_text(candidate.description) or DEFAULT_DESCRIPTION

    return ScholarshipRecord(
        title=title,
        description=description,
        amount=parse_amount(candidate.raw_amount),
        deadline=parse_deadline(candidate.raw_deadline),
        source_url=candidate.source_url or source.endpoint,
        provenance=PROVENANCE_BY_MECHANISM[source.mechanism],
        source_name=source.name,
        category=categorize(title, description),
        level=determine_level(title, description),
    )
