"""Configuration management for logseq-tools.

This module contains the connection settings for the Logseq HTTP API and all
configurable constants used by the analyses. Magic numbers are documented here
rather than scattered throughout the codebase.
"""

import os
from dataclasses import dataclass
from pathlib import Path


class ConfigurationError(Exception):
    """Raised when configuration is present but unusable."""

    pass


CONFIG_FILENAME = ".logseq-tools.yaml"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = "12315"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class ApiSettings:
    """Resolved connection settings for the Logseq HTTP API."""

    api_url: str
    token: str | None
    timeout: float


def _discover_config_file(start_dir: Path | None = None, max_depth: int = 10) -> dict | None:
    """Walk up from start_dir looking for a .logseq-tools.yaml file.

    Args:
        start_dir: Directory to start from (defaults to cwd)
        max_depth: Maximum directories to traverse up

    Returns:
        Parsed mapping from the first config file found, None otherwise.
    """
    import yaml

    current = Path(start_dir or os.getcwd()).resolve()

    for _ in range(max_depth):
        config_file = current / CONFIG_FILENAME
        if config_file.exists():
            try:
                data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            except (OSError, yaml.YAMLError):
                data = {}
            if isinstance(data, dict):
                return data

        parent = current.parent
        if parent == current:  # Reached filesystem root
            break
        current = parent

    return None


def get_api_url(file_config: dict | None = None) -> str:
    """Get the Logseq API endpoint.

    Discovery order:
    1. LOGSEQ_API_URL environment variable
    2. LOGSEQ_HOST / LOGSEQ_PORT environment variables
    3. api_url in .logseq-tools.yaml
    4. http://127.0.0.1:12315/api
    """
    url = os.environ.get("LOGSEQ_API_URL")
    if url:
        return url

    host = os.environ.get("LOGSEQ_HOST")
    port = os.environ.get("LOGSEQ_PORT")
    if host or port:
        return f"http://{host or DEFAULT_HOST}:{port or DEFAULT_PORT}/api"

    if file_config and file_config.get("api_url"):
        return str(file_config["api_url"])

    return f"http://{DEFAULT_HOST}:{DEFAULT_PORT}/api"


def get_api_token(file_config: dict | None = None) -> str | None:
    """Get the bearer token configured in Logseq's HTTP API server settings."""
    token = os.environ.get("LOGSEQ_TOKEN")
    if token:
        return token
    if file_config and file_config.get("token"):
        return str(file_config["token"])
    return None


def get_timeout(file_config: dict | None = None) -> float:
    """Get the HTTP timeout in seconds.

    Raises:
        ConfigurationError: If the configured value is not a positive number.
    """
    raw = os.environ.get("LOGSEQ_TIMEOUT")
    if raw is None and file_config:
        raw = file_config.get("timeout")
    if raw is None or raw == "":
        return DEFAULT_TIMEOUT

    try:
        timeout = float(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid timeout {raw!r}: expected a number of seconds")
    if timeout <= 0:
        raise ConfigurationError(f"Invalid timeout {raw!r}: must be positive")
    return timeout


def get_api_settings(start_dir: Path | None = None) -> ApiSettings:
    """Resolve all connection settings (env vars take precedence over the config file)."""
    file_config = _discover_config_file(start_dir)
    return ApiSettings(
        api_url=get_api_url(file_config),
        token=get_api_token(file_config),
        timeout=get_timeout(file_config),
    )


# =============================================================================
# Graph Analysis
# =============================================================================

# Recency window for "recent updates" and stale-page detection
DEFAULT_DAYS_THRESHOLD = 30

# A page referenced at least this many times (i.e. more than twice) is
# "frequently referenced"
FREQUENT_REFERENCE_MIN_COUNT = 3

# Connected components smaller than this are not reported as clusters
CLUSTER_MIN_SIZE = 3

# Report section limits
MAX_REPORTED_FREQUENT = 10
MAX_REPORTED_RECENT = 10
MAX_REPORTED_CLUSTERS = 5
MAX_REPORTED_STALE = 5


# =============================================================================
# Knowledge Gaps
# =============================================================================

# Minimum references before a missing/underdeveloped page is reported
DEFAULT_MIN_REFERENCE_COUNT = 3

# Pages whose top-level text is shorter than this are "underdeveloped"
UNDERDEVELOPED_MAX_CHARS = 100

# Characters of current content quoted in the underdeveloped section
CONTENT_PREVIEW_CHARS = 50


# =============================================================================
# Journal Patterns
# =============================================================================

DEFAULT_TIMEFRAME = "last 30 days"

# Window used when the timeframe expression is not understood
FALLBACK_TIMEFRAME_DAYS = 30

TOP_TOPICS_LIMIT = 10

# Substrings (matched case-insensitively) that mark a block as a mood note
MOOD_INDICATORS = (
    "mood:",
    "feeling:",
    "\U0001f60a",  # smiling face with smiling eyes
    "\U0001f614",  # pensive face
    "\U0001f620",  # angry face
    "\U0001f60c",  # relieved face
    "happy",
    "sad",
    "angry",
    "excited",
    "tired",
    "anxious",
)


# =============================================================================
# Connection Suggestions
# =============================================================================

DEFAULT_MIN_CONFIDENCE = 0.6
DEFAULT_MAX_SUGGESTIONS = 10

# Similarity = TOPIC_WEIGHT * shared topics + NAME_MENTION_WEIGHT per direction
# in which one page's text mentions the other page's name
TOPIC_SIMILARITY_WEIGHT = 0.6
NAME_MENTION_WEIGHT = 0.2

# Topics shown in a potential-connection reason before eliding with "..."
REASON_TOPIC_LIMIT = 3

# A topic shared by this many pages without its own page is a synthesis opportunity
SYNTHESIS_MIN_PAGES = 3
SYNTHESIS_BASE_CONFIDENCE = 0.8
SYNTHESIS_PAGE_CONFIDENCE = 0.05

# Exploration suggestions compare against the most recently updated pages
EXPLORATION_RECENT_PAGES = 10
EXPLORATION_MIN_SHARED_TOPICS = 2
EXPLORATION_BASE_CONFIDENCE = 0.6
EXPLORATION_TOPIC_CONFIDENCE = 0.1


# =============================================================================
# Structured Queries
# =============================================================================

# Rows rendered in the "Results" section of a query report
QUERY_RESULT_LIMIT = 20

# Hubs listed in the network insights of a connection query
QUERY_HUB_LIMIT = 5

# Window for the "recent"/"modified" fallback query
RECENT_QUERY_DAYS = 7
