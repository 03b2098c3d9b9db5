"""Redirect route."""

from fastapi import APIRouter, Request, status
from fastapi.responses import RedirectResponse

from ..api.dependencies import client_ip

router = APIRouter()


@router.get(
    "/{code}",
    status_code=status.HTTP_301_MOVED_PERMANENTLY,
    responses={404: {"description": "Short link not found or expired"}},
    summary="Follow short link",
)
async def redirect_to_url(request: Request, code: str):
    """Redirect to the original URL and record the visit."""
    service = request.app.state.service
    
    original_url = await service.resolve(
        code,
        ip=client_ip(request),
        user_agent=request.headers.get("user-agent"),
        referer=request.headers.get("referer"),
    )
    
    return RedirectResponse(url=original_url, status_code=status.HTTP_301_MOVED_PERMANENTLY)
