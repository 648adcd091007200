# backend/gaterace/models/rider.py

from datetime import datetime

from sqlalchemy import String, DateTime, Integer, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db import Base, utcnow
from ..domain.enums import Gender, ParticipationStatus


class Rider(Base):
    __tablename__ = "riders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    plate_number: Mapped[int] = mapped_column(Integer, nullable=False)
    plate_display: Mapped[str | None] = mapped_column(String, nullable=True)  # номер на табличке, "12A"
    birth_year: Mapped[int] = mapped_column(Integer, nullable=False)
    gender: Mapped[Gender] = mapped_column(Enum(Gender), nullable=False)
    club: Mapped[str | None] = mapped_column(String, nullable=True)

    participation_status: Mapped[ParticipationStatus] = mapped_column(
        Enum(ParticipationStatus),
        nullable=False,
        default=ParticipationStatus.ACTIVE,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
    )

    event = relationship("Event", back_populates="riders")

    @property
    def plate(self) -> str:
        return self.plate_display or str(self.plate_number)


class RiderExtraCategory(Base):
    """Гонщик, заявленный в категорию вне своего года/пола."""

    __tablename__ = "rider_extra_categories"
    __table_args__ = (UniqueConstraint("rider_id", "category_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    rider_id: Mapped[int] = mapped_column(
        ForeignKey("riders.id", ondelete="CASCADE"),
        nullable=False,
    )
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
