"""Natours Backend: /api/v1/bookings list, detail and create."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from natours.database import get_db_session
from natours.schemas.booking import BookingCreate, BookingResponse
from natours.schemas.common import API_ERROR_RESPONSES, serialize
from natours.services import booking_service

router = APIRouter(prefix="/api/v1/bookings", tags=["Bookings"], responses=API_ERROR_RESPONSES)


@router.get("")
async def get_all_bookings(db: AsyncSession = Depends(get_db_session)) -> dict:
    bookings = await booking_service.list(db)
    return {
        "status": "success",
        "results": len(bookings),
        "data": {"bookings": [serialize(BookingResponse, booking) for booking in bookings]},
    }


@router.get("/{booking_id}")
async def get_booking(booking_id: UUID, db: AsyncSession = Depends(get_db_session)) -> dict:
    booking = await booking_service.get(db, booking_id)
    return {"status": "success", "data": {"booking": serialize(BookingResponse, booking)}}


@router.post("", status_code=201)
async def create_booking(
    payload: BookingCreate, db: AsyncSession = Depends(get_db_session)
) -> dict:
    booking = await booking_service.create(db, payload.model_dump())
    return {"status": "success", "data": {"booking": serialize(BookingResponse, booking)}}
