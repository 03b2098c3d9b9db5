"""Common utilities for URL shortener."""

from .validators import (
    validate_url,
    validate_code,
    is_valid_code,
    parse_ttl,
    DEFAULT_TTL_SECONDS,
    MIN_TTL_SECONDS,
    MAX_TTL_SECONDS,
    MAX_CODE_LENGTH,
)
from .headers import (
    extract_forwarded_headers,
    extract_client_ip,
    extract_bearer_token,
    build_base_url,
)
from .url_builder import build_short_url, short_url_for_request
from .logging_config import setup_logging, get_logger
from .timeutil import now_unix, unix_to_date

__all__ = [
    "validate_url",
    "validate_code",
    "is_valid_code",
    "parse_ttl",
    "DEFAULT_TTL_SECONDS",
    "MIN_TTL_SECONDS",
    "MAX_TTL_SECONDS",
    "MAX_CODE_LENGTH",
    "extract_forwarded_headers",
    "extract_client_ip",
    "extract_bearer_token",
    "build_base_url",
    "build_short_url",
    "short_url_for_request",
    "setup_logging",
    "get_logger",
    "now_unix",
    "unix_to_date",
]
