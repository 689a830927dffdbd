"""
Fetch module for the Scholarship Aggregator pipeline.

This module retrieves the raw body of one source endpoint with a bounded
timeout and a fixed client signature. Every failure is returned as a
FetchError value; nothing raises past fetch_url.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from scholarship_aggregator.errors import FetchError
from scholarship_aggregator.utils import get_logger


# Module logger
logger = get_logger("fetch")

# Default configuration
DEFAULT_TIMEOUT = 10  # seconds
DEFAULT_MAX_RETRIES = 0
DEFAULT_USER_AGENT = "ScholarshipAggregator-Bot/1.0"


@dataclass
class FetchResult:
    """
    Represents the result of fetching a single endpoint.

    Attributes:
        source_url: The endpoint that was fetched.
        body: Response text if successful, None otherwise.
        success: Whether the fetch was successful.
        error: FetchError describing the failure, None on success.
        status_code: HTTP status code if a response was received.
    """
    source_url: str
    body: Optional[str]
    success: bool
    error: Optional[FetchError] = None
    status_code: Optional[int] = None

    @property
    def error_message(self) -> Optional[str]:
        return self.error.cause if self.error else None


def create_session(
    max_retries: int = DEFAULT_MAX_RETRIES,
    backoff_factor: float = 0.0
) -> requests.Session:
    """
    Create a requests session carrying the default client headers.

    Args:
        max_retries: Retry attempts for transient failures. Defaults to none.
        backoff_factor: Multiplier for exponential backoff between retries.

    Returns:
        Configured requests.Session instance.
    """
    session = requests.Session()

    retry_strategy = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False
    )

    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update({
        "User-Agent": DEFAULT_USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml,application/json;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
    })

    return session


def validate_url(url: str) -> bool:
    """
    Validate that a URL is well-formed and uses HTTP/HTTPS.

    Args:
        url: URL string to validate.

    Returns:
        True if URL is valid, False otherwise.
    """
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)
    except ValueError:
        return False


def _failure(url: str, cause: str, status_code: Optional[int] = None) -> FetchResult:
    return FetchResult(
        source_url=url,
        body=None,
        success=False,
        error=FetchError(endpoint=url, cause=cause, status_code=status_code),
        status_code=status_code
    )


def fetch_url(
    url: str,
    headers: Optional[Mapping[str, Any]] = None,
    params: Optional[Mapping[str, Any]] = None,
    timeout: float = DEFAULT_TIMEOUT,
    session: Optional[requests.Session] = None
) -> FetchResult:
    """
    Fetch a single endpoint and return the result.

    Caller headers are merged over the session defaults, so they can
    replace the User-Agent. Any non-2xx status counts as a failure.

    Args:
        url: Endpoint to fetch.
        headers: Extra request headers.
        params: Query parameters.
        timeout: Request timeout in seconds.
        session: Session to reuse. A new one is created and closed if None.

    Returns:
        FetchResult containing the fetch outcome.
    """
    logger.debug(f"Fetching URL: {url}")

    if not validate_url(url):
        logger.warning(f"Invalid URL format: {url}")
        return _failure(url, "Invalid URL format")

    own_session = session is None
    if own_session:
        session = create_session()

    request_headers: Dict[str, str] = {str(k): str(v) for k, v in (headers or {}).items()}

    try:
        response = session.get(
            url,
            headers=request_headers or None,
            params=dict(params) if params else None,
            timeout=timeout
        )

        if 200 <= response.status_code < 300:
            logger.info(f"Successfully fetched {url} ({len(response.text)} bytes)")
            return FetchResult(
                source_url=url,
                body=response.text,
                success=True,
                status_code=response.status_code
            )

        logger.warning(f"HTTP {response.status_code} for {url}")
        return _failure(url, f"HTTP {response.status_code}", response.status_code)

    except requests.exceptions.Timeout:
        logger.warning(f"Timeout fetching {url}")
        return _failure(url, "Request timeout")

    except requests.exceptions.ConnectionError as e:
        logger.warning(f"Connection error for {url}: {e}")
        return _failure(url, f"Connection error: {e}")

    except requests.exceptions.RequestException as e:
        logger.error(f"Request exception for {url}: {e}")
        return _failure(url, f"Request failed: {e}")

    finally:
        if own_session:
            session.close()
