"""
Natours Backend: Not-Found Sentinel
=====================================

Catch-all route included after every other router and mount. Any method on
any path nothing else claimed raises a 404 operational error naming the
original URL.
"""

from fastapi import APIRouter, Request

from natours.exceptions import NotFoundError

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

router = APIRouter(include_in_schema=False)


def original_url(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


@router.api_route("/{full_path:path}", methods=ALL_METHODS)
async def not_found(request: Request) -> None:
    raise NotFoundError(message=f"Can't find {original_url(request)} on this server!")
