# backend/gaterace/models/event.py

from datetime import date

from sqlalchemy import String, Date, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db import Base


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    location: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(String, nullable=True)

    categories = relationship(
        "Category",
        back_populates="event",
        cascade="all, delete-orphan",
    )
    riders = relationship(
        "Rider",
        back_populates="event",
        cascade="all, delete-orphan",
    )
