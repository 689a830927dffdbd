"""
Utility functions for the Scholarship Aggregator pipeline.

This module provides:
- Central logging configuration
- Safe JSON read helper for configuration documents
- Relevance keyword configuration loading and validation
- Shared helper utilities used across modules
"""

import json
import logging
import os
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Set
from urllib.parse import urljoin, urlparse


# Default configuration paths
DEFAULT_RELEVANCE_CONFIG_PATH = "config/relevance.json"


# Keywords naming places in the target population (Nigeria)
DEFAULT_LOCALITY_KEYWORDS: List[str] = [
    "nigeria", "nigerian", "lagos", "abuja", "kano", "ibadan", "port harcourt",
    "calabar", "benin", "kaduna", "maiduguri", "zaria", "ilorin", "jos",
    "oyo", "ogun", "ondo", "ekiti", "osun", "kwara", "kogi", "nasarawa",
]

# Keywords signalling international or development-oriented eligibility
DEFAULT_BREADTH_KEYWORDS: List[str] = [
    "international", "global", "worldwide", "africa", "african",
    "developing countries", "low-income countries",
]


class RelevanceConfig:
    """Keyword sets used to decide whether a scholarship is in scope."""

    def __init__(
        self,
        locality_keywords: List[str],
        breadth_keywords: List[str],
        name: str = "default"
    ):
        self.name = name
        self.locality_keywords = set(kw.lower() for kw in locality_keywords if kw)
        self.breadth_keywords = set(kw.lower() for kw in breadth_keywords if kw)

    def __repr__(self) -> str:
        return (
            f"RelevanceConfig(name={self.name}, "
            f"locality={len(self.locality_keywords)}, "
            f"breadth={len(self.breadth_keywords)})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "locality_keywords": sorted(self.locality_keywords),
            "breadth_keywords": sorted(self.breadth_keywords),
        }


def get_default_relevance_config() -> RelevanceConfig:
    """Get the built-in Nigerian relevance configuration."""
    return RelevanceConfig(
        locality_keywords=DEFAULT_LOCALITY_KEYWORDS,
        breadth_keywords=DEFAULT_BREADTH_KEYWORDS,
        name="nigeria"
    )


def load_relevance_config(config_path: Optional[str] = None) -> RelevanceConfig:
    """
    Load relevance keywords from JSON or environment.

    Priority:
    1. RELEVANCE_CONFIG environment variable (JSON string)
    2. RELEVANCE_CONFIG_PATH environment variable (file path)
    3. Provided config_path parameter
    4. Default config file path

    The document has the shape
    ``{"name": ..., "locality_keywords": [...], "breadth_keywords": [...]}``.
    If neither keyword list holds anything usable, the built-in Nigerian
    configuration is returned.

    Args:
        config_path: Optional path to the configuration file.

    Returns:
        RelevanceConfig instance.
    """
    logger = get_logger("utils")
    data = None

    env_config = os.environ.get("RELEVANCE_CONFIG", "").strip()
    if env_config:
        try:
            data = json.loads(env_config)
            logger.info("Loaded relevance config from RELEVANCE_CONFIG environment variable")
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in RELEVANCE_CONFIG: {e}")

    if data is None:
        env_path = os.environ.get("RELEVANCE_CONFIG_PATH", "").strip()
        file_path = env_path or config_path or DEFAULT_RELEVANCE_CONFIG_PATH

        data = safe_read_json(file_path, default={})
        if data:
            logger.info(f"Loaded relevance config from {file_path}")

    if isinstance(data, dict):
        locality = _string_list(data.get("locality_keywords"))
        breadth = _string_list(data.get("breadth_keywords"))
        if locality or breadth:
            config = RelevanceConfig(
                locality_keywords=locality,
                breadth_keywords=breadth,
                name=str(data.get("name") or "custom")
            )
            logger.info(f"Using relevance config: {config}")
            return config

    logger.debug("No relevance config found, using default Nigeria keywords")
    return get_default_relevance_config()


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def validate_relevance_config(config: RelevanceConfig) -> List[str]:
    """
    Validate a relevance configuration and return any warnings.

    Args:
        config: RelevanceConfig to validate.

    Returns:
        List of warning messages (empty if valid).
    """
    warnings = []

    if not config.locality_keywords:
        warnings.append(f"Relevance config '{config.name}' has no locality keywords")

    if not config.breadth_keywords:
        warnings.append(f"Relevance config '{config.name}' has no breadth keywords")

    overlap: Set[str] = config.locality_keywords & config.breadth_keywords
    if overlap:
        warnings.append(f"Keywords listed in both sets: {sorted(overlap)}")

    return warnings


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure and return the root logger for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to INFO.

    Returns:
        Configured logger instance.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    logger = logging.getLogger("scholarship_aggregator")
    logger.setLevel(log_level)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Name for the logger, typically the module name.

    Returns:
        Logger instance configured as a child of the main application logger.
    """
    return logging.getLogger(f"scholarship_aggregator.{name}")


def safe_read_json(filepath: str, default: Optional[Any] = None) -> Any:
    """
    Safely read JSON data from a file.

    Args:
        filepath: Path to the JSON file.
        default: Default value to return if file doesn't exist or is invalid.
                 Defaults to None.

    Returns:
        Parsed JSON data or the default value on failure.
    """
    logger = get_logger("utils")

    try:
        path = Path(filepath)
        if not path.exists():
            logger.debug(f"File does not exist: {filepath}, returning default")
            return default

        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
            logger.debug(f"Successfully read JSON from {filepath}")
            return data

    except json.JSONDecodeError as e:
        logger.warning(f"Invalid JSON in {filepath}: {e}")
        return default
    except OSError as e:
        logger.error(f"Could not read {filepath}: {e}")
        return default


def get_env_var(name: str, required: bool = True, default: Optional[str] = None) -> Optional[str]:
    """
    Get an environment variable with optional requirement enforcement.

    Args:
        name: Name of the environment variable.
        required: If True, raises ValueError when variable is not set.
                  Defaults to True.
        default: Default value if variable is not set and not required.

    Returns:
        Value of the environment variable or default.

    Raises:
        ValueError: If required=True and the variable is not set.
    """
    value = os.environ.get(name)

    if value is None or value.strip() == "":
        if required:
            raise ValueError(f"Required environment variable '{name}' is not set")
        return default

    return value.strip()


def get_env_int(name: str, default: int, minimum: int = 1) -> int:
    """Read a positive integer from the environment, falling back to default."""
    raw = get_env_var(name, required=False)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        get_logger("utils").warning(f"Ignoring non-integer {name}={raw!r}")
        return default
    return max(value, minimum)


def normalize_url(url: str, base_url: str) -> str:
    """
    Normalize a potentially relative URL to an absolute URL.

    Args:
        url: The URL to normalize (may be relative or absolute).
        base_url: The base URL to use for resolving relative URLs.

    Returns:
        Absolute URL string.
    """
    parsed = urlparse(url)
    if parsed.scheme and parsed.netloc:
        return url

    return urljoin(base_url, url)


def sanitize_text(text: Optional[str]) -> str:
    """
    Clean and normalize text content.

    Removes extra whitespace, newlines, and normalizes spacing.

    Args:
        text: Raw text to sanitize.

    Returns:
        Cleaned text string.
    """
    if not text:
        return ""

    cleaned = re.sub(r"\s+", " ", text)
    return cleaned.strip()
