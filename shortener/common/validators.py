"""Validation utilities for URLs, short codes and TTL specs."""

import re
from urllib.parse import urlparse

from ..errors import BadInputError


MAX_CODE_LENGTH = 32

MIN_TTL_SECONDS = 300  # 5 minutes
MAX_TTL_SECONDS = 30 * 24 * 60 * 60  # 30 days
DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60

TTL_UNITS = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
}

_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def validate_url(url: str) -> None:
    """Validate a target URL.

    The URL must be absolute http(s) and must not point back at the local
    machine, otherwise the service becomes an open redirector into the
    local network.

    Args:
        url: The URL to validate

    Raises:
        BadInputError: If the URL is rejected
    """
    if not url or not isinstance(url, str):
        raise BadInputError("URL is required")

    if not url.startswith(("http://", "https://")):
        raise BadInputError("URL must start with http:// or https://")

    try:
        result = urlparse(url)
        host = result.hostname or ""
    except ValueError as e:
        raise BadInputError(f"Invalid URL format: {e}") from e

    if not host:
        raise BadInputError("URL must have a valid domain")

    host = host.lower()
    if host == "localhost" or host.startswith("127.0.0.1"):
        raise BadInputError("URL cannot point to localhost or 127.0.0.1")


def validate_code(code: str) -> None:
    """Validate a short code against ``[A-Za-z0-9_-]{1,32}``.

    Args:
        code: The short code to validate

    Raises:
        BadInputError: If the code is rejected
    """
    if not code or not isinstance(code, str):
        raise BadInputError("Code cannot be empty")

    if len(code) > MAX_CODE_LENGTH:
        raise BadInputError(f"Code cannot exceed {MAX_CODE_LENGTH} characters")

    if not _CODE_PATTERN.match(code):
        raise BadInputError(
            "Code can only contain letters, numbers, hyphens, and underscores"
        )


def is_valid_code(code: str) -> bool:
    """Return True if ``code`` passes :func:`validate_code`."""
    try:
        validate_code(code)
    except BadInputError:
        return False
    return True


def parse_ttl(spec: str) -> int:
    """Parse a TTL spec such as ``"5m"``, ``"1h"`` or ``"30d"`` into seconds.

    Units are s, m, h and d (case-insensitive); surrounding whitespace is
    ignored. The result must lie within [300, 2592000].

    Args:
        spec: TTL specification

    Returns:
        TTL in seconds

    Raises:
        BadInputError: If the spec is malformed or out of range
    """
    if not isinstance(spec, str):
        raise BadInputError("Invalid TTL format")

    ttl = spec.strip().lower()
    if len(ttl) < 2:
        raise BadInputError("Invalid TTL format")

    number, unit = ttl[:-1], ttl[-1]
    if not (number.isascii() and number.isdigit()):
        raise BadInputError(f"Invalid TTL number: {number}")

    if unit not in TTL_UNITS:
        raise BadInputError(f"Invalid TTL unit: {unit}. Use s, m, h, or d")

    seconds = int(number) * TTL_UNITS[unit]

    if seconds < MIN_TTL_SECONDS:
        raise BadInputError(
            f"TTL must be at least {MIN_TTL_SECONDS} seconds (5 minutes)"
        )
    if seconds > MAX_TTL_SECONDS:
        raise BadInputError(
            f"TTL cannot exceed {MAX_TTL_SECONDS} seconds (30 days)"
        )

    return seconds
