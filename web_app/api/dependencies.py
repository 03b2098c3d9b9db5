"""Request dependencies: bearer authentication and creation rate limiting."""

import secrets
from typing import Optional

from fastapi import Request

from shortener.common.headers import extract_bearer_token, extract_client_ip
from shortener.errors import UnauthorizedError


def client_ip(request: Request) -> Optional[str]:
    """Client IP for rate limiting and visit records, if one can be derived."""
    ip = getattr(request.state, "client_ip", None)
    if ip:
        return ip
    peer = request.client.host if request.client else None
    return extract_client_ip(dict(request.headers), peer)


async def require_auth(request: Request) -> None:
    """Enforce ``Authorization: Bearer <auth_token>`` when a token is configured."""
    expected = request.app.state.config.auth_token
    if not expected:
        return

    token = extract_bearer_token(dict(request.headers))
    if token is None or not secrets.compare_digest(token.encode(), expected.encode()):
        raise UnauthorizedError("Invalid or missing authorization token")


async def enforce_rate_limit(request: Request) -> None:
    """Consume one token from the caller's bucket or fail with 429."""
    request.app.state.rate_limiter.acquire(client_ip(request) or "unknown")
