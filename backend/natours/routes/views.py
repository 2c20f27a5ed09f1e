"""
Natours Backend: Page Routes
==============================

Server-rendered pages. Errors raised here are rendered through error.html by
the error normalization layer because their paths do not start with /api.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from natours.database import get_db_session
from natours.exceptions import NotFoundError
from natours.services import tour_service
from natours.templating import templates

# HEAD is answered wherever GET is
PAGE_METHODS = ["GET", "HEAD"]

router = APIRouter(tags=["Views"], include_in_schema=False)


@router.api_route("/", methods=PAGE_METHODS)
async def overview(request: Request, db: AsyncSession = Depends(get_db_session)):
    tours = await tour_service.list(db, sort=["name"])
    return templates.TemplateResponse(
        request, "overview.html", {"title": "All Tours", "tours": tours}
    )


@router.api_route("/tour/{slug}", methods=PAGE_METHODS)
async def tour_detail(slug: str, request: Request, db: AsyncSession = Depends(get_db_session)):
    tour = await tour_service.get_by(db, slug=slug)
    if tour is None:
        raise NotFoundError(message="There is no tour with that name.")
    return templates.TemplateResponse(
        request, "tour.html", {"title": f"{tour.name} Tour", "tour": tour}
    )
