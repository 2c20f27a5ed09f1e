"""Review request/response schemas."""

import uuid
from datetime import datetime

from pydantic import Field

from natours.schemas.common import CamelModel


class ReviewCreate(CamelModel):
    review: str = Field(min_length=1)
    rating: float = Field(ge=1, le=5)
    tour_id: uuid.UUID
    user_id: uuid.UUID


class ReviewResponse(CamelModel):
    id: uuid.UUID
    review: str
    rating: float
    tour_id: uuid.UUID
    user_id: uuid.UUID
    created_at: datetime
