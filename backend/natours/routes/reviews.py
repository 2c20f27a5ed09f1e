"""Natours Backend: /api/v1/reviews list, detail and create."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from natours.database import get_db_session
from natours.schemas.common import API_ERROR_RESPONSES, serialize
from natours.schemas.review import ReviewCreate, ReviewResponse
from natours.services import review_service

router = APIRouter(prefix="/api/v1/reviews", tags=["Reviews"], responses=API_ERROR_RESPONSES)


@router.get("")
async def get_all_reviews(
    tour: Optional[UUID] = Query(default=None, description="Only reviews of this tour"),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    filters = {"tour_id": [tour]} if tour else None
    reviews = await review_service.list(db, filters=filters)
    return {
        "status": "success",
        "results": len(reviews),
        "data": {"reviews": [serialize(ReviewResponse, review) for review in reviews]},
    }


@router.get("/{review_id}")
async def get_review(review_id: UUID, db: AsyncSession = Depends(get_db_session)) -> dict:
    review = await review_service.get(db, review_id)
    return {"status": "success", "data": {"review": serialize(ReviewResponse, review)}}


@router.post("", status_code=201)
async def create_review(
    payload: ReviewCreate, db: AsyncSession = Depends(get_db_session)
) -> dict:
    review = await review_service.create(db, payload.model_dump())
    return {"status": "success", "data": {"review": serialize(ReviewResponse, review)}}
