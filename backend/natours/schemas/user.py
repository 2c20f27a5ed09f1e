"""User request/response schemas."""

import uuid
from datetime import datetime

from pydantic import Field

from natours.schemas.common import CamelModel


class UserCreate(CamelModel):
    name: str = Field(min_length=1, max_length=80)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=255)


class UserResponse(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    role: str
    photo: str
    created_at: datetime
