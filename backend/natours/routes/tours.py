"""
Natours Backend: Tour Route Handlers
======================================

What:  /api/v1/tours list, detail, create and delete.
How:   Reads filters from the request context, where the pipeline has already
       sanitized the query and collapsed repeated keys. Filter fields on the
       pollution whitelist may carry several values and become IN filters.

Examples:
    GET /api/v1/tours?difficulty=easy&difficulty=medium&sort=-price
    GET /api/v1/tours?duration=5&limit=10&page=2
"""

import logging
import re
from typing import Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from natours.database import get_db_session
from natours.exceptions import ValidationError
from natours.middleware.context import QueryValue, RequestContext, get_request_context
from natours.models import Tour
from natours.schemas.common import API_ERROR_RESPONSES, serialize
from natours.schemas.tour import TourCreate, TourResponse
from natours.services import tour_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/tours", tags=["Tours"], responses=API_ERROR_RESPONSES)

# query key → model column
FILTER_COLUMNS = {
    "duration": "duration",
    "ratingsAverage": "ratings_average",
    "ratingsQuantity": "ratings_quantity",
    "maxGroupSize": "max_group_size",
    "difficulty": "difficulty",
    "price": "price",
}
SORT_COLUMNS = {**FILTER_COLUMNS, "name": "name", "createdAt": "created_at"}


def build_filters(query: Dict[str, QueryValue]) -> Dict[str, List]:
    """Typed column filters from the context query; bad numbers are a 400."""
    filters: Dict[str, List] = {}
    for key, column_name in FILTER_COLUMNS.items():
        if key not in query:
            continue
        raw = query[key]
        values = raw if isinstance(raw, list) else [raw]
        python_type = getattr(Tour, column_name).type.python_type
        try:
            filters[column_name] = [python_type(value) for value in values]
        except ValueError:
            raise ValidationError(message=f"Invalid {key}: {raw}.", field=key)
    return filters


def build_sort(query: Dict[str, QueryValue]) -> List[str]:
    raw = query.get("sort")
    if not raw:
        return []
    if isinstance(raw, list):
        raw = raw[-1]
    fields = []
    for field in raw.split(","):
        name = field.strip()
        key = name.lstrip("-")
        if key not in SORT_COLUMNS:
            raise ValidationError(message=f"Cannot sort tours by '{key}'.", field="sort")
        fields.append(("-" if name.startswith("-") else "") + SORT_COLUMNS[key])
    return fields


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


@router.get("", summary="List tours")
async def get_all_tours(
    limit: int = Query(default=100, ge=1, le=100),
    page: int = Query(default=1, ge=1),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    tours = await tour_service.list(
        db,
        filters=build_filters(ctx.query),
        sort=build_sort(ctx.query),
        limit=limit,
        offset=(page - 1) * limit,
    )
    return {
        "status": "success",
        "requestedAt": ctx.request_time,
        "results": len(tours),
        "data": {"tours": [serialize(TourResponse, tour) for tour in tours]},
    }


@router.get("/{tour_id}", summary="Get one tour")
async def get_tour(tour_id: UUID, db: AsyncSession = Depends(get_db_session)) -> dict:
    tour = await tour_service.get(db, tour_id)
    return {"status": "success", "data": {"tour": serialize(TourResponse, tour)}}


@router.post("", status_code=201, summary="Create a tour")
async def create_tour(payload: TourCreate, db: AsyncSession = Depends(get_db_session)) -> dict:
    data = payload.model_dump()
    data["slug"] = slugify(payload.name)
    tour = await tour_service.create(db, data)
    return {"status": "success", "data": {"tour": serialize(TourResponse, tour)}}


@router.delete("/{tour_id}", status_code=204, summary="Delete a tour")
async def delete_tour(tour_id: UUID, db: AsyncSession = Depends(get_db_session)) -> Response:
    await tour_service.delete(db, tour_id)
    return Response(status_code=204)
