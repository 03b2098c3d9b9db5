"""Forwarded headers middleware."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from typing import Callable

from shortener.common.headers import extract_client_ip


class ForwardedHeadersMiddleware(BaseHTTPMiddleware):
    """Resolve the client IP once per request (X-Real-IP, X-Forwarded-For, peer)."""
    
    async def dispatch(self, request: Request, call_next: Callable):
        """Process request and store the client IP on request state."""
        request.state.client_ip = extract_client_ip(
            dict(request.headers),
            request.client.host if request.client else None,
        )
        
        response = await call_next(request)
        return response
