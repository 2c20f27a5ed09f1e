"""
Natours Backend: Tour SQLAlchemy Model
========================================

What:  ORM model for the `tours` table.
Who:   Queried by the tours API group and the overview/tour pages.

Columns filtered from the query string (duration, ratings, group size,
difficulty, price) are the fields the parameter pollution guard lets through
with several values.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from natours.database import Base


class Tour(Base):
    __tablename__ = "tours"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Name and slug are unique; a duplicate insert surfaces as IntegrityError
    # and is reported as "Duplicate field value".
    name: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(60), nullable=False, unique=True, index=True)

    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    max_group_size: Mapped[int] = mapped_column(Integer, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(20), nullable=False)
    ratings_average: Mapped[float] = mapped_column(Float, nullable=False, default=4.5)
    ratings_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    summary: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<Tour(id={self.id}, slug='{self.slug}')>"
