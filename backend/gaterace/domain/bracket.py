# backend/gaterace/domain/bracket.py
"""
Правила продвижения по сетке.

Квалификация (место в батче):
  1-4 -> 1/4 финала, 5 -> Final ACADEMY, 6 -> Final AMATEUR, 7-8 -> Final BEGINNER
1/4 финала (место в заезде):
  1-4 -> 1/2 финала, 5-6 -> Final PRO, 7-8 -> Final ROOKIE
1/2 финала:
  1-4 -> Final ELITE, 5-8 -> Final NOVICE
Финал: место на финише и есть итоговое место.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from .enums import FinalClass, Stage
from .lineup import chunk
from .stages import StageResolution

# "нет места" для сортировки; в таблицы не пишется
MISSING_ORDER = 9999


@dataclass(frozen=True)
class Advance:
    rider_id: int
    stage: Stage
    final_class: FinalClass | None = None


@dataclass(frozen=True)
class RankedRider:
    rider_id: int
    rank: int
    finish_order: int | None


def qualification_target(rank: int) -> Tuple[Stage, FinalClass | None] | None:
    if 1 <= rank <= 4:
        return Stage.QUARTER_FINAL, None
    if rank == 5:
        return Stage.FINAL, FinalClass.ACADEMY
    if rank == 6:
        return Stage.FINAL, FinalClass.AMATEUR
    if rank in (7, 8):
        return Stage.FINAL, FinalClass.BEGINNER
    return None


def quarter_final_target(rank: int) -> Tuple[Stage, FinalClass | None] | None:
    if 1 <= rank <= 4:
        return Stage.SEMI_FINAL, None
    if rank in (5, 6):
        return Stage.FINAL, FinalClass.PRO
    if rank in (7, 8):
        return Stage.FINAL, FinalClass.ROOKIE
    return None


def semi_final_target(rank: int) -> Tuple[Stage, FinalClass | None] | None:
    if 1 <= rank <= 4:
        return Stage.FINAL, FinalClass.ELITE
    if 5 <= rank <= 8:
        return Stage.FINAL, FinalClass.NOVICE
    return None


def qualification_advances(
    ranked: Iterable[Tuple[int, int]],
    resolution: StageResolution,
) -> List[Advance]:
    """
    ranked - пары (rider_id, rank) из агрегатора батча.
    Продвижения в выключенные стадии отбрасываются; если 1/4 выключена,
    а 1/2 включена - первая четвёрка идёт сразу в полуфинал.
    """
    compress = not resolution.enable_quarter_final and resolution.enable_semi_final

    advances: List[Advance] = []
    for rider_id, rank in ranked:
        target = qualification_target(rank)
        if target is None:
            continue
        stage, final_class = target
        if stage == Stage.QUARTER_FINAL and compress:
            stage = Stage.SEMI_FINAL
        if not resolution.permits(stage, final_class):
            continue
        advances.append(Advance(rider_id, stage, final_class))
    return advances


def qualification_targets(resolution: StageResolution) -> List[Tuple[Stage, FinalClass | None]]:
    """Стадии/классы, в которые пишет квалификация (с учётом сжатия 1/4 -> 1/2)."""
    compress = not resolution.enable_quarter_final and resolution.enable_semi_final
    targets = []
    for rank in range(1, 9):
        stage, final_class = qualification_target(rank)
        if stage == Stage.QUARTER_FINAL and compress:
            stage = Stage.SEMI_FINAL
        if (stage, final_class) not in targets:
            targets.append((stage, final_class))
    return targets


def rank_by_finish_order(finishes: Mapping[int, int | None]) -> List[RankedRider]:
    """
    Место в заезде 1/4 или 1/2 - просто порядок финиша.
    DNF/DNS здесь не превращаются в очки: без места -> в конец.
    Одинаковые значения делят место (1, 2, 2, 4).
    """
    rows = sorted(
        finishes.items(),
        key=lambda item: item[1] if item[1] is not None else MISSING_ORDER,
    )

    ranked: List[RankedRider] = []
    current_rank = 0
    last_value = None
    for idx, (rider_id, order) in enumerate(rows, start=1):
        value = order if order is not None else MISSING_ORDER
        if last_value is None or value != last_value:
            current_rank = idx
            last_value = value
        ranked.append(RankedRider(rider_id=rider_id, rank=current_rank, finish_order=order))
    return ranked


def _advances(ranked: Sequence[RankedRider], target) -> List[Advance]:
    out: List[Advance] = []
    for row in ranked:
        mapped = target(row.rank)
        if mapped is None:
            continue
        stage, final_class = mapped
        out.append(Advance(row.rider_id, stage, final_class))
    return out


def quarter_final_advances(ranked: Sequence[RankedRider]) -> List[Advance]:
    return _advances(ranked, quarter_final_target)


def semi_final_advances(ranked: Sequence[RankedRider]) -> List[Advance]:
    return _advances(ranked, semi_final_target)


def plan_heats(rider_ids: Sequence[int], max_riders: int) -> List[List[int]]:
    """Разбиваем продвинувшихся на заезды по max_riders (не меньше 4)."""
    return chunk(rider_ids, max(4, int(max_riders)))


def validate_final_assignments(
    finals: Mapping[FinalClass, Sequence[int]],
    min_race_size: int = 4,
) -> str | None:
    """
    Проверка финалов перед авто-логикой. Возвращает текст предупреждения или None.
    Размер считается по всему финальному полю, а не по отдельному классу.
    """
    if sum(len(riders) for riders in finals.values()) < min_race_size:
        return f"Final race size < {min_race_size}. Auto logic skipped."

    seen: Dict[int, FinalClass] = {}
    for final_class, riders in finals.items():
        for rider_id in riders:
            existing = seen.get(rider_id)
            if existing is not None and existing != final_class:
                return (
                    f"Rider {rider_id} appears in multiple final classes "
                    f"({existing.value}, {FinalClass(final_class).value}). Auto logic skipped."
                )
            seen[rider_id] = final_class
    return None


def final_winners(finals: Mapping[FinalClass, Mapping[int, int | None]]) -> Dict[FinalClass, int]:
    """Победитель каждого финала (гонщик с минимальным местом)."""
    winners: Dict[FinalClass, int] = {}
    for final_class, finishes in finals.items():
        placed = [(order, rider_id) for rider_id, order in finishes.items() if order is not None]
        if placed:
            winners[final_class] = min(placed)[1]
    return winners
