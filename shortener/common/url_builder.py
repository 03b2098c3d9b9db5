"""Short URL construction."""

from typing import Dict

from .headers import build_base_url


def build_short_url(code: str, base_url: str, path_prefix: str = "") -> str:
    """Join ``base_url``, an optional ``path_prefix`` and ``code``.
    
    Slashes around the base and the prefix are normalized, so ``/s``,
    ``s/`` and ``/s/`` all yield ``<base>/s/<code>``.
    """
    parts = [base_url.rstrip("/")]
    prefix = path_prefix.strip("/")
    if prefix:
        parts.append(prefix)
    parts.append(code)
    return "/".join(parts)


def short_url_for_request(
    code: str,
    headers: Dict[str, str],
    fallback_base_url: str,
    path_prefix: str = "",
) -> str:
    """Short URL as seen by the client that made the request.
    
    Args:
        code: The short code
        headers: Request headers (X-Forwarded-Proto/Host honoured)
        fallback_base_url: Configured base URL
        path_prefix: Optional path prefix
        
    Returns:
        Complete short URL
    """
    return build_short_url(code, build_base_url(headers, fallback_base_url), path_prefix)
