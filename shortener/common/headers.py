"""Header parsing utilities for URL shortener."""

from typing import Dict, Optional


def extract_forwarded_headers(headers: Dict[str, str]) -> Dict[str, Optional[str]]:
    """Extract X-Forwarded-* headers from request.

    Args:
        headers: Request headers dictionary

    Returns:
        Dictionary with forwarded_proto, forwarded_host, forwarded_for
    """
    # Convert headers to lowercase for case-insensitive lookup
    headers_lower = {k.lower(): v for k, v in headers.items()}

    return {
        "forwarded_proto": headers_lower.get("x-forwarded-proto"),
        "forwarded_host": headers_lower.get("x-forwarded-host"),
        "forwarded_for": headers_lower.get("x-forwarded-for"),
    }


def _parse_forwarded_for(value: str) -> Optional[str]:
    """Return the first ``for=`` node of an RFC 7239 Forwarded header."""
    first_element = value.split(",")[0]
    for pair in first_element.split(";"):
        name, _, node = pair.strip().partition("=")
        if name.lower() != "for" or not node:
            continue
        node = node.strip().strip('"')
        # IPv6 nodes are bracketed and may carry a port: "[2001:db8::1]:4711"
        if node.startswith("["):
            return node[1:node.find("]")] if "]" in node else None
        if node.count(":") == 1:
            node = node.split(":")[0]
        return node or None
    return None


def extract_client_ip(
    headers: Dict[str, str],
    peer_host: Optional[str] = None,
) -> Optional[str]:
    """Derive the client IP used as the rate-limit key and visit IP.

    Priority:
    1. First entry of X-Forwarded-For
    2. X-Real-IP
    3. ``for=`` node of the Forwarded header
    4. Transport-level peer address

    Args:
        headers: Request headers
        peer_host: Peer address of the connection, if known

    Returns:
        Client IP string, or None if nothing is available
    """
    headers_lower = {k.lower(): v for k, v in headers.items()}

    forwarded_for = headers_lower.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = (headers_lower.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip

    forwarded = headers_lower.get("forwarded")
    if forwarded:
        node = _parse_forwarded_for(forwarded)
        if node:
            return node

    return peer_host or None


def build_base_url(
    headers: Dict[str, str],
    fallback_base_url: str,
) -> str:
    """Build base URL from headers or fallback.

    Priority:
    1. X-Forwarded-Proto + X-Forwarded-Host
    2. Fallback base URL from config

    Args:
        headers: Request headers
        fallback_base_url: Fallback base URL from configuration

    Returns:
        Base URL (e.g., https://example.com)
    """
    forwarded = extract_forwarded_headers(headers)

    # Try X-Forwarded headers first (from proxy)
    if forwarded["forwarded_proto"] and forwarded["forwarded_host"]:
        proto = forwarded["forwarded_proto"]
        host = forwarded["forwarded_host"]
        return f"{proto}://{host}"

    return fallback_base_url.rstrip("/")


def extract_bearer_token(headers: Dict[str, str]) -> Optional[str]:
    """Return the token of an ``Authorization: Bearer <token>`` header."""
    for k, v in headers.items():
        if k.lower() == "authorization" and v:
            scheme, _, token = v.partition(" ")
            if scheme == "Bearer" and token:
                return token
    return None
