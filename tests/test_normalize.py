"""
Tests for the normalize module.

Tests cover:
- Amount parsing (currency symbols, separators, ranges)
- Deadline parsing (pattern priority, validation, fall-through)
- Category and level classification
- Candidate normalization and defaults
"""

from datetime import date, datetime

import pytest

from scholarship_aggregator.models import CandidateRecord, Mechanism, Provenance, SourceDescriptor
from scholarship_aggregator.normalize import (
    DEFAULT_DESCRIPTION,
    DEFAULT_TITLE,
    categorize,
    deadline_to_iso,
    determine_level,
    normalize_candidate,
    parse_amount,
    parse_deadline,
)


class TestParseAmount:
    """Tests for monetary amount parsing."""

    def test_empty_and_none(self):
        """Test that missing input yields zero."""
        assert parse_amount("") == 0
        assert parse_amount(None) == 0

    def test_naira_with_separators(self):
        """Test naira symbol and thousands separators are stripped."""
        assert parse_amount("₦500,000") == 500000

    def test_dollar_amount_with_text(self):
        assert parse_amount("$1,000 award") == 1000

    @pytest.mark.parametrize("text,expected", [
        ("€2,500", 2500),
        ("£750 per year", 750),
        ("¥100000", 100000),
    ])
    def test_other_currency_symbols(self, text, expected):
        assert parse_amount(text) == expected

    def test_range_takes_last_run(self):
        """Test that ranges resolve to the last number."""
        assert parse_amount("$100 to $500") == 500
        assert parse_amount("$1,000 - $5,000") == 5000

    def test_no_digits(self):
        """Test that text without digits yields zero."""
        assert parse_amount("Full tuition") == 0
        assert parse_amount("Varies") == 0

    @pytest.mark.parametrize("text", ["", "$1,000", "₦500,000", "$100 to $500", "Up to 20000 naira"])
    def test_idempotent_on_clean_integers(self, text):
        """Test that re-parsing a parsed amount gives the same amount."""
        assert parse_amount(str(parse_amount(text))) == parse_amount(text)

    def test_never_negative(self):
        assert parse_amount("-500") == 500

    def test_oversized_digit_run_is_unparseable(self):
        """Test that a huge digit run yields zero instead of raising."""
        assert parse_amount("$" + "9" * 5000) == 0
        assert parse_amount("1" * 16) == 0

    def test_longest_accepted_run(self):
        assert parse_amount("9" * 15) == 999999999999999

    def test_oversized_run_before_valid_amount(self):
        """Test that only the last run matters."""
        assert parse_amount("9" * 5000 + " then $2,500") == 2500

    def test_long_mixed_garbage(self):
        text = ("<td>&nbsp;</td>$?x" * 2000) + "1" * 6000
        assert parse_amount(text) == 0


class TestParseDeadline:
    """Tests for deadline parsing."""

    def test_empty_and_none(self):
        assert parse_deadline("") is None
        assert parse_deadline(None) is None

    def test_slash_format(self):
        """Test M/D/YYYY is month first."""
        assert parse_deadline("12/31/2025") == date(2025, 12, 31)
        assert parse_deadline("3/5/2026") == date(2026, 3, 5)

    def test_dash_format(self):
        """Test M-D-YYYY is month first."""
        assert parse_deadline("04-15-2026") == date(2026, 4, 15)

    def test_iso_format(self):
        """Test YYYY-M-D is year first."""
        assert parse_deadline("2026-01-31") == date(2026, 1, 31)

    def test_month_name_format(self):
        """Test month names with and without comma."""
        assert parse_deadline("December 31, 2025") == date(2025, 12, 31)
        assert parse_deadline("december 31 2025") == date(2025, 12, 31)
        assert parse_deadline("Deadline: March 1, 2026") == date(2026, 3, 1)

    def test_month_name_and_numeric_agree(self):
        assert parse_deadline("12/31/2025") == parse_deadline("December 31, 2025")

    def test_month_abbreviation(self):
        assert parse_deadline("Dec 31, 2025") == date(2025, 12, 31)

    def test_unknown_month_name(self):
        """Test that unresolvable month names are not guessed."""
        assert parse_deadline("Smarch 12, 2026") is None

    def test_not_a_date(self):
        assert parse_deadline("not a date") is None
        assert parse_deadline("Rolling admissions") is None

    def test_year_must_be_after_2000(self):
        """Test that years of 2000 and earlier are rejected."""
        assert parse_deadline("01/01/1999") is None
        assert parse_deadline("2000-06-01") is None

    def test_invalid_month_rejected(self):
        assert parse_deadline("13/01/2026") is None
        assert parse_deadline("0/10/2026") is None

    def test_invalid_day_rejected(self):
        assert parse_deadline("02/00/2026") is None
        assert parse_deadline("02/30/2026") is None

    def test_invalid_match_falls_through_to_next_pattern(self):
        """Test that a failed validation tries the remaining patterns."""
        assert parse_deadline("13/45/2026 or 2026-06-30") == date(2026, 6, 30)

    def test_slash_takes_priority_over_month_name(self):
        assert parse_deadline("June 1, 2026 (extended to 7/1/2026)") == date(2026, 7, 1)

    def test_rfc822_pub_date_not_matched(self):
        """Test that feed publication dates do not fit any pattern."""
        assert parse_deadline("Mon, 06 Sep 2021 16:45:00 +0000") is None

    def test_oversized_and_garbage_input(self):
        """Test that very long text returns None or a date, never raises."""
        assert parse_deadline("9" * 5000) is None
        assert parse_deadline("a" * 50000) is None
        assert parse_deadline("x/" * 10000 + "12/31/2025") == date(2025, 12, 31)
        assert parse_deadline("Smarch" * 5000 + " 12, 2026") is None

    def test_month_name_after_digits(self):
        assert parse_deadline("5June 1, 2026") == date(2026, 6, 1)


class TestDeadlineToIso:
    """Tests for deadline serialization."""

    def test_none(self):
        assert deadline_to_iso(None) is None

    def test_local_midnight(self):
        """Test serialization as local midnight of the date."""
        serialized = deadline_to_iso(date(2025, 12, 31))
        parsed = datetime.fromisoformat(serialized)

        assert parsed.date() == date(2025, 12, 31)
        assert (parsed.hour, parsed.minute, parsed.second) == (0, 0, 0)
        assert parsed.tzinfo is not None


class TestClassification:
    """Tests for category and level classification."""

    @pytest.mark.parametrize("text,expected", [
        ("Federal Government Scholarship", "Government"),
        ("Shell Foundation Award", "Corporate"),
        ("University of Lagos Bursary", "Academic"),
        ("Community Essay Prize", "Private"),
    ])
    def test_categorize(self, text, expected):
        assert categorize(text, "") == expected

    @pytest.mark.parametrize("text,expected", [
        ("Bachelor degree support", "Undergraduate"),
        ("PhD Fellowship", "Postgraduate"),
        ("Masters award", "Postgraduate"),
        ("Senior secondary school grant", "Secondary"),
        ("General award", "Undergraduate"),
    ])
    def test_determine_level(self, text, expected):
        assert determine_level(text, "") == expected


class TestNormalizeCandidate:
    """Tests for candidate normalization."""

    @pytest.fixture
    def document_source(self):
        return SourceDescriptor.create("Test Site", Mechanism.DOCUMENT, "https://example.com/list")

    def test_full_candidate(self, document_source):
        candidate = CandidateRecord(
            title="  Merit   Scholarship ",
            description="For STEM students in Lagos",
            raw_amount="$1,000 award",
            raw_deadline="12/31/2025",
            source_url="https://example.com/merit",
        )

        record = normalize_candidate(candidate, document_source)

        assert record.title == "Merit Scholarship"
        assert record.amount == 1000
        assert record.deadline == date(2025, 12, 31)
        assert record.source_url == "https://example.com/merit"
        assert record.provenance == Provenance.DOCUMENT_SCRAPE
        assert record.source_name == "Test Site"

    def test_defaults_for_missing_fields(self, document_source):
        record = normalize_candidate(CandidateRecord(), document_source)

        assert record.title == DEFAULT_TITLE
        assert record.description == DEFAULT_DESCRIPTION
        assert record.amount == 0
        assert record.deadline is None
        assert record.source_url == "https://example.com/list"

    def test_provenance_follows_mechanism(self):
        feed = SourceDescriptor.create("Feed", Mechanism.FEED, "https://example.com/rss")
        api = SourceDescriptor.create("API", Mechanism.API, "https://api.example.com")

        assert normalize_candidate(CandidateRecord(), feed).provenance == Provenance.FEED
        assert normalize_candidate(CandidateRecord(), api).provenance == Provenance.API

    def test_structural_equality(self, document_source):
        candidate = CandidateRecord(title="A", description="B", raw_amount="5")

        assert normalize_candidate(candidate, document_source) == normalize_candidate(candidate, document_source)

    def test_to_dict(self, document_source):
        candidate = CandidateRecord(title="A", description="B", raw_deadline="2026-02-01")

        data = normalize_candidate(candidate, document_source).to_dict()

        assert data["title"] == "A"
        assert data["source"] == "Web Scraping"
        assert data["deadline"].startswith("2026-02-01T00:00:00")
