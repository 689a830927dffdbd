"""
Trigger operations for the Scholarship Aggregator pipeline.

These functions are the boundary to the HTTP layer. Each one runs the
aggregator and returns a JSON-ready response dictionary:

- success: {"success": True, "count": n, "scholarships": [...]}
- bad request: {"success": False, "error": message, "status": 400}
- unknown source: {"success": False, "error": "Source not found", "status": 404}
- anything else: {"success": False, "error": "Internal server error", "status": 500}

Internal details of unexpected failures are logged, never returned.
"""

from functools import wraps
from typing import Any, Callable, Dict, Mapping, Optional

from scholarship_aggregator.aggregate import Aggregator
from scholarship_aggregator.errors import ConfigurationError
from scholarship_aggregator.models import BatchResult
from scholarship_aggregator.utils import get_logger


# Module logger
logger = get_logger("triggers")

SAMPLE_SIZE = 3

Response = Dict[str, Any]


def batch_response(batch: BatchResult, **extra: Any) -> Response:
    """Build a success response from a batch."""
    response: Response = {"success": True}
    response.update(extra)
    response["count"] = batch.count
    response["scholarships"] = batch.to_dicts()
    return response


def sample_response(batch: BatchResult, **extra: Any) -> Response:
    """Build a success response carrying only the first few records."""
    response: Response = {"success": True}
    response.update(extra)
    response["count"] = batch.count
    response["sample"] = [s.to_dict() for s in batch.scholarships[:SAMPLE_SIZE]]
    return response


def error_response(message: str, status: int) -> Response:
    return {"success": False, "error": message, "status": status}


def handles_errors(func: Callable[..., Response]) -> Callable[..., Response]:
    """Map ConfigurationError to 400/404 responses and anything else to a generic 500."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Response:
        try:
            return func(*args, **kwargs)
        except ConfigurationError as e:
            if e.not_found:
                logger.warning(f"{func.__name__}: {e.message}")
                return error_response("Source not found", 404)
            logger.warning(f"{func.__name__} rejected: {e.message}")
            return error_response(e.message, 400)
        except Exception:
            logger.exception(f"Unexpected error in {func.__name__}")
            return error_response("Internal server error", 500)
    return wrapper


@handles_errors
def fetch_external(aggregator: Aggregator, source_type: str = "all") -> Response:
    """Run every registered source of a category (all, scrape, rss/feed, api)."""
    return batch_response(aggregator.run(source_type))


@handles_errors
def scrape_website(
    aggregator: Aggregator,
    url: Optional[str],
    selectors: Optional[Mapping[str, Any]] = None
) -> Response:
    """Scrape one page, using the first registered selectors when none are given."""
    return batch_response(aggregator.run_document(url or "", selectors))


@handles_errors
def parse_feed(aggregator: Aggregator, feed_url: Optional[str]) -> Response:
    """Read one syndication feed."""
    return batch_response(aggregator.run_feed(feed_url or ""))


@handles_errors
def call_external_api(
    aggregator: Aggregator,
    api_url: Optional[str],
    headers: Optional[Mapping[str, Any]] = None,
    params: Optional[Mapping[str, Any]] = None
) -> Response:
    """Call one JSON API with optional headers and query parameters."""
    return batch_response(aggregator.run_api(api_url or "", headers, params))


@handles_errors
def trigger_source(aggregator: Aggregator, source_name: Optional[str]) -> Response:
    """Run one registered source by exact name."""
    batch = aggregator.run_by_name(source_name or "")
    return batch_response(batch, source=source_name)


@handles_errors
def sample_source(aggregator: Aggregator, source_config: Optional[Mapping[str, Any]]) -> Response:
    """Run an ad-hoc source and return the full count with a small sample."""
    batch = aggregator.run_config(source_config or {})
    return sample_response(batch, source=(source_config or {}).get("name"))


@handles_errors
def automation_status(aggregator: Aggregator) -> Response:
    """Describe the registered sources."""
    return {"success": True, "status": aggregator.status()}
