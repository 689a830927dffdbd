"""
Scholarship Aggregator - Multi-source scholarship ingestion pipeline.

This package provides functionality to:
- Fetch scholarship listings from scraped pages, RSS feeds and JSON APIs
- Extract and normalize amounts and deadlines into a common record
- Filter scholarships for relevance to the target population
- Aggregate sources on demand and on a recurring schedule
"""

__version__ = "1.0.0"
__author__ = "Scholarship Aggregator Team"
