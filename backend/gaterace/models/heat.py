# backend/gaterace/models/heat.py

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..db import Base, utcnow
from ..domain.enums import FinalClass, HeatStatus, ResultStatus, Stage
from ..domain.identifiers import HeatKey, parse_heat_name


class Heat(Base):
    """
    Один заезд (мото).
    Идентичность хранится структурно (stage/batch_index/heat_index/...),
    name - легаси-строка "Moto 1 - Batch 2" для совместимости.
    """
    __tablename__ = "heats"

    id = Column(Integer, primary_key=True)
    category_id = Column(
        Integer,
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = Column(String(50), nullable=False)
    stage = Column(Enum(Stage), nullable=True)
    batch_index = Column(Integer, nullable=True)
    heat_index = Column(Integer, nullable=True)     # 1..3 внутри батча
    heat_number = Column(Integer, nullable=True)    # номер заезда 1/4, 1/2
    final_class = Column(Enum(FinalClass), nullable=True)

    order = Column(Integer, nullable=False)
    status = Column(Enum(HeatStatus), nullable=False, default=HeatStatus.UPCOMING)
    is_published = Column(Boolean, nullable=False, default=False)
    published_at = Column(DateTime, nullable=True)

    category = relationship("Category", back_populates="heats")
    riders = relationship(
        "HeatRider",
        back_populates="heat",
        cascade="all, delete-orphan",
        order_by="HeatRider.id",
    )
    gates = relationship(
        "GateAssignment",
        back_populates="heat",
        cascade="all, delete-orphan",
        order_by="GateAssignment.gate_position",
    )
    results = relationship(
        "HeatResult",
        back_populates="heat",
        cascade="all, delete-orphan",
    )

    @classmethod
    def from_key(cls, category_id: int, key: HeatKey, order: int) -> "Heat":
        return cls(
            category_id=category_id,
            name=key.name,
            stage=key.stage,
            batch_index=key.batch_index,
            heat_index=key.heat_index,
            heat_number=key.heat_number,
            final_class=key.final_class,
            order=order,
            status=HeatStatus.UPCOMING,
            is_published=False,
        )

    @property
    def key(self) -> HeatKey | None:
        # старые записи без структурных полей разбираем по имени
        if self.stage is None:
            return parse_heat_name(self.name)
        return HeatKey(
            stage=self.stage,
            batch_index=self.batch_index,
            heat_index=self.heat_index,
            heat_number=self.heat_number,
            final_class=self.final_class,
        )


class HeatRider(Base):
    """Состав заезда. created_at - порядок попадания в заезд."""
    __tablename__ = "heat_riders"
    __table_args__ = (UniqueConstraint("heat_id", "rider_id"),)

    id = Column(Integer, primary_key=True)
    heat_id = Column(
        Integer,
        ForeignKey("heats.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rider_id = Column(
        Integer,
        ForeignKey("riders.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at = Column(DateTime, nullable=False, default=utcnow)

    heat = relationship("Heat", back_populates="riders")


class GateAssignment(Base):
    __tablename__ = "gate_assignments"
    __table_args__ = (
        UniqueConstraint("heat_id", "rider_id"),
        UniqueConstraint("heat_id", "gate_position"),
    )

    id = Column(Integer, primary_key=True)
    heat_id = Column(
        Integer,
        ForeignKey("heats.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rider_id = Column(
        Integer,
        ForeignKey("riders.id", ondelete="CASCADE"),
        nullable=False,
    )
    gate_position = Column(Integer, nullable=False)

    heat = relationship("Heat", back_populates="gates")


class HeatResult(Base):
    """
    Результат гонщика в заезде: FINISH + место, либо DNF/DNS без места.
    """
    __tablename__ = "heat_results"
    __table_args__ = (UniqueConstraint("heat_id", "rider_id"),)

    id = Column(Integer, primary_key=True)
    heat_id = Column(
        Integer,
        ForeignKey("heats.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rider_id = Column(
        Integer,
        ForeignKey("riders.id", ondelete="CASCADE"),
        nullable=False,
    )
    status = Column(Enum(ResultStatus), nullable=False, default=ResultStatus.FINISH)
    finish_order = Column(Integer, nullable=True)

    heat = relationship("Heat", back_populates="results")
