"""Booking request/response schemas."""

import uuid
from datetime import datetime

from pydantic import Field

from natours.schemas.common import CamelModel


class BookingCreate(CamelModel):
    tour_id: uuid.UUID
    user_id: uuid.UUID
    price: float = Field(gt=0)
    paid: bool = True


class BookingResponse(CamelModel):
    id: uuid.UUID
    tour_id: uuid.UUID
    user_id: uuid.UUID
    price: float
    paid: bool
    created_at: datetime
