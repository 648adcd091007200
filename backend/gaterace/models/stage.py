# backend/gaterace/models/stage.py

from sqlalchemy import Integer, ForeignKey, Enum
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base
from ..domain.enums import FinalClass, Stage


class StageResult(Base):
    """
    Строка "гонщик дошёл до стадии".
    Для стадии строки всегда пересобираются целиком, не накапливаются.
    """

    __tablename__ = "stage_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rider_id: Mapped[int] = mapped_column(
        ForeignKey("riders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    stage: Mapped[Stage] = mapped_column(Enum(Stage), nullable=False)
    batch_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    final_class: Mapped[FinalClass | None] = mapped_column(Enum(FinalClass), nullable=True)

    position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    points: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def as_tuple(self) -> tuple:
        return (
            self.rider_id,
            self.stage.value,
            self.batch_index,
            self.final_class.value if self.final_class else None,
            self.position,
            self.points,
        )
