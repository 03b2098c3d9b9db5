"""Access logging middleware."""

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from shortener.common.logging_config import get_logger


class LoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request: method, path, client, status and latency.
    
    Server errors log at ERROR and client errors at WARNING so rejected
    creations (400/401/409/429) stand out from normal redirects.
    """
    
    def __init__(self, app, logger: logging.Logger = None):
        super().__init__(app)
        self.logger = logger or get_logger("web")
    
    def _level_for(self, status_code: int) -> int:
        if status_code >= 500:
            return logging.ERROR
        if status_code >= 400:
            return logging.WARNING
        return logging.INFO
    
    async def dispatch(self, request: Request, call_next: Callable):
        started = time.perf_counter()
        client_ip = getattr(request.state, "client_ip", None) or "unknown"
        
        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - started) * 1000
            self.logger.error(
                f"{request.method} {request.url.path} from {client_ip} "
                f"failed after {elapsed_ms:.2f}ms"
            )
            raise
        
        elapsed_ms = (time.perf_counter() - started) * 1000
        self.logger.log(
            self._level_for(response.status_code),
            f"{request.method} {request.url.path} from {client_ip} -> "
            f"{response.status_code} in {elapsed_ms:.2f}ms",
        )
        
        return response
