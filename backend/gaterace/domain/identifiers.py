# backend/gaterace/domain/identifiers.py
"""
Идентификатор заезда.

Внутри движка заезд определяется структурно (стадия + номер батча/мото,
номер заезда или класс финала). Строковые имена вида "Moto 2 - Batch 3"
остаются только на границе совместимости: их умеем и печатать, и разбирать.
"""

import re
from dataclasses import dataclass

from .enums import FinalClass, Stage

_MOTO_RE = re.compile(r"moto\s*(\d+)\s*-\s*batch\s*(\d+)", re.IGNORECASE)
_QUARTER_RE = re.compile(r"^\s*quarter\s*final\s*-\s*heat\s*(\d+)\s*$", re.IGNORECASE)
_SEMI_RE = re.compile(r"^\s*semi\s*final\s*-\s*heat\s*(\d+)\s*$", re.IGNORECASE)
_FINAL_RE = re.compile(r"^\s*final\s+([a-z]+)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class HeatKey:
    stage: Stage
    batch_index: int | None = None
    heat_index: int | None = None      # 1..3 внутри батча квалификации
    heat_number: int | None = None     # номер заезда 1/4 и 1/2
    final_class: FinalClass | None = None

    @classmethod
    def moto(cls, heat_index: int, batch_index: int) -> "HeatKey":
        return cls(stage=Stage.QUALIFICATION, batch_index=batch_index, heat_index=heat_index)

    @classmethod
    def quarter_final(cls, heat_number: int) -> "HeatKey":
        return cls(stage=Stage.QUARTER_FINAL, heat_number=heat_number)

    @classmethod
    def semi_final(cls, heat_number: int) -> "HeatKey":
        return cls(stage=Stage.SEMI_FINAL, heat_number=heat_number)

    @classmethod
    def final(cls, final_class: FinalClass) -> "HeatKey":
        return cls(stage=Stage.FINAL, final_class=FinalClass(final_class))

    @property
    def name(self) -> str:
        if self.stage == Stage.QUALIFICATION:
            return f"Moto {self.heat_index} - Batch {self.batch_index}"
        if self.stage == Stage.QUARTER_FINAL:
            return f"Quarter Final - Heat {self.heat_number}"
        if self.stage == Stage.SEMI_FINAL:
            return f"Semi Final - Heat {self.heat_number}"
        return f"Final {self.final_class.value}"


def parse_heat_name(name: str | None) -> HeatKey | None:
    """Разбор легаси-имени заезда. Неизвестный формат -> None."""
    if not name:
        return None

    m = _MOTO_RE.search(name)
    if m:
        return HeatKey.moto(int(m.group(1)), int(m.group(2)))

    m = _QUARTER_RE.match(name)
    if m:
        return HeatKey.quarter_final(int(m.group(1)))

    m = _SEMI_RE.match(name)
    if m:
        return HeatKey.semi_final(int(m.group(1)))

    m = _FINAL_RE.match(name)
    if m:
        try:
            return HeatKey.final(FinalClass(m.group(1).upper()))
        except ValueError:
            return None

    return None
