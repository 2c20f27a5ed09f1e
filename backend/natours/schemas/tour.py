"""Tour request/response schemas."""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from natours.schemas.common import CamelModel


class TourCreate(CamelModel):
    name: str = Field(min_length=10, max_length=40)
    duration: int = Field(gt=0)
    max_group_size: int = Field(gt=0)
    difficulty: Literal["easy", "medium", "difficult"]
    ratings_average: float = Field(default=4.5, ge=1, le=5)
    ratings_quantity: int = Field(default=0, ge=0)
    price: float = Field(gt=0)
    summary: str = Field(default="", max_length=255)
    description: Optional[str] = None


class TourResponse(CamelModel):
    id: uuid.UUID
    name: str
    slug: str
    duration: int
    max_group_size: int
    difficulty: str
    ratings_average: float
    ratings_quantity: int
    price: float
    summary: str
    description: Optional[str] = None
    created_at: datetime
