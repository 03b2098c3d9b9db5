"""JSON API: link creation, analytics and health."""

from .routes import router as api_router

__all__ = ["api_router"]
