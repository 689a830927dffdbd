"""
Error types for the Scholarship Aggregator pipeline.

Only ConfigurationError is raised to callers. Fetch and extraction
failures are carried as values so that one bad source or item never
aborts a batch.
"""

from dataclasses import dataclass
from typing import Optional


class ConfigurationError(Exception):
    """Raised when a request is missing required input or names an unknown source."""

    def __init__(self, message: str, not_found: bool = False):
        super().__init__(message)
        self.message = message
        self.not_found = not_found


@dataclass(frozen=True)
class FetchError:
    """
    A failed retrieval of one endpoint.

    Attributes:
        endpoint: URL that was requested.
        cause: Human-readable description of the failure.
        status_code: HTTP status code if a response was received.
    """
    endpoint: str
    cause: str
    status_code: Optional[int] = None

    def __str__(self) -> str:
        return f"{self.endpoint}: {self.cause}"


@dataclass(frozen=True)
class ExtractionError:
    """
    A response or item that could not be turned into a candidate.

    Attributes:
        source_name: Name of the source being extracted.
        cause: Human-readable description of the failure.
        item_index: Position of the failing item, or None when the whole
            response was unusable.
    """
    source_name: str
    cause: str
    item_index: Optional[int] = None

    def __str__(self) -> str:
        where = "response" if self.item_index is None else f"item {self.item_index}"
        return f"{self.source_name} ({where}): {self.cause}"
