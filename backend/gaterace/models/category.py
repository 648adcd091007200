# backend/gaterace/models/category.py

from sqlalchemy import Boolean, Enum, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db import Base
from ..domain.enums import Gender


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    label: Mapped[str] = mapped_column(String, nullable=False)

    # допуск по году рождения и полу
    year_min: Mapped[int] = mapped_column(Integer, nullable=False)
    year_max: Mapped[int] = mapped_column(Integer, nullable=False)
    gender: Mapped[Gender] = mapped_column(Enum(Gender), nullable=False, default=Gender.MIX)

    advanced_race_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    max_riders_per_race: Mapped[int] = mapped_column(Integer, nullable=False, default=8)

    # ручное управление стадиями (в обход правил), JSON с флагами enable*
    stage_override: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    event = relationship("Event", back_populates="categories")
    rules = relationship(
        "StageRule",
        back_populates="category",
        cascade="all, delete-orphan",
        order_by="StageRule.min_riders",
    )
    heats = relationship(
        "Heat",
        back_populates="category",
        cascade="all, delete-orphan",
    )


class StageRule(Base):
    """Ступень правил: с какого числа гонщиков включаются стадии."""

    __tablename__ = "stage_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    min_riders: Mapped[int] = mapped_column(Integer, nullable=False)
    enable_qualification: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    enable_quarter_final: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    enable_semi_final: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    enabled_final_classes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    category = relationship("Category", back_populates="rules")
