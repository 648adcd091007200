# backend/gaterace/domain/scoring.py
"""
Очки за заезд и агрегация по батчу.

Очки считаются "чем меньше, тем лучше":
  FINISH -> место на финише
  DNF    -> размер поля заезда (худшее место)
  DNS    -> фиксированные 9 очков
  нет результата -> None (ещё не приехал)
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence

from ..core.errors import ValidationError
from .enums import ResultStatus, RiderStatus

DEFAULT_DNS_POINT = 9
DEFAULT_DQ_THRESHOLD = 7

INFINITY = float("inf")


@dataclass(frozen=True)
class HeatEntry:
    rider_id: int
    status: ResultStatus = ResultStatus.FINISH
    finish_order: int | None = None


def heat_point(
    entry: HeatEntry | None,
    field_size: int,
    dns_point: int = DEFAULT_DNS_POINT,
) -> int | None:
    if entry is None:
        return None
    if entry.status == ResultStatus.DNS:
        return dns_point
    if entry.status == ResultStatus.DNF:
        return field_size
    return entry.finish_order


def validate_submission(
    entries: Sequence[HeatEntry],
    roster: Iterable[int],
    stored: Mapping[int, HeatEntry] | None = None,
) -> Dict[int, HeatEntry]:
    """
    Проверяем пачку результатов одного заезда до записи.

    Возвращает итоговое состояние заезда (сохранённое + новое) или
    бросает ValidationError; в этом случае ничего писать нельзя.
    """
    if not entries:
        raise ValidationError("results required")

    roster_set = set(roster)
    if not roster_set:
        raise ValidationError("No riders assigned to heat")

    seen: set[int] = set()
    for entry in entries:
        if entry.rider_id not in roster_set:
            raise ValidationError("Rider not assigned to heat")
        if entry.rider_id in seen:
            raise ValidationError("Duplicate rider in submission")
        seen.add(entry.rider_id)

        if entry.status == ResultStatus.FINISH:
            if entry.finish_order is None or entry.finish_order < 1:
                raise ValidationError("finish_order required for FINISH")
        elif entry.finish_order is not None:
            raise ValidationError(f"finish_order must be empty for {entry.status.value}")

    submitted_orders = [e.finish_order for e in entries if e.status == ResultStatus.FINISH]
    if len(set(submitted_orders)) != len(submitted_orders):
        raise ValidationError("Duplicate finish_order in this heat")

    merged: Dict[int, HeatEntry] = dict(stored or {})
    for entry in entries:
        merged[entry.rider_id] = entry

    orders = sorted(e.finish_order for e in merged.values() if e.status == ResultStatus.FINISH)
    if len(set(orders)) != len(orders):
        raise ValidationError("Duplicate finish_order in this heat")
    if orders != list(range(1, len(orders) + 1)):
        raise ValidationError("finish_order must be consecutive starting from 1")

    return merged


# --- агрегация батча ------------------------------------------------


@dataclass
class HeatSheet:
    """Один мото батча: номер, размер поля и результаты по гонщикам."""

    heat_index: int
    field_size: int
    results: Dict[int, HeatEntry] = field(default_factory=dict)


@dataclass
class AggregateRow:
    rider_id: int
    points: Dict[int, int | None]
    penalty: int | None
    total_point: int | None
    status: RiderStatus
    tiebreak: int | None = None
    rank: int | None = None
    display_class: str | None = None


def display_class(rank: int | None) -> str | None:
    """Подпись для табло. Реальное распределение по стадиям делает bracket."""
    if not rank:
        return None
    if 1 <= rank <= 4:
        return "QUARTER FINAL"
    if rank == 5:
        return "FINAL ACADEMY"
    if rank == 6:
        return "FINAL AMATEUR"
    if rank in (7, 8):
        return "FINAL BEGINNER"
    return None


class BatchAggregator:
    def __init__(self, dq_threshold: int = DEFAULT_DQ_THRESHOLD, dns_point: int = DEFAULT_DNS_POINT):
        self.dq_threshold = dq_threshold
        self.dns_point = dns_point

    def aggregate(
        self,
        riders: Sequence[int],
        heats: Sequence[HeatSheet],
        penalties: Mapping[int, int] | None = None,
        absent: Iterable[int] = (),
    ) -> List[AggregateRow]:
        """
        riders - состав батча (порядок = порядок на старте первого мото,
        он же последний критерий сортировки).
        Возвращает строки, отсортированные по месту.
        """
        penalties = penalties or {}
        absent_set = set(absent)
        ordered_heats = sorted(heats, key=lambda h: h.heat_index)

        rows = [
            self._row(rider_id, ordered_heats, penalties.get(rider_id, 0), rider_id in absent_set)
            for rider_id in riders
        ]

        rows.sort(
            key=lambda r: (
                r.total_point if r.total_point is not None else INFINITY,
                r.tiebreak if r.tiebreak is not None else INFINITY,
            )
        )

        rank = 0
        for row in rows:
            if row.total_point is None:
                continue
            rank += 1
            row.rank = rank
            row.display_class = display_class(rank)
        return rows

    def _row(self, rider_id: int, heats: Sequence[HeatSheet], penalty: int, is_absent: bool) -> AggregateRow:
        entries = [heat.results.get(rider_id) for heat in heats]
        points = {
            heat.heat_index: heat_point(entry, heat.field_size, self.dns_point)
            for heat, entry in zip(heats, entries)
        }

        # None только если нет ни одного результата; пропущенный мото = 0
        known = [p for p in points.values() if p is not None]
        base = sum(known) if known else None
        total = base + penalty if base is not None else None
        counted_penalty = penalty if base is not None else None

        # тай-брейк: место в последнем заезде, где есть результат (3 > 2 > 1)
        last = next((e for e in reversed(entries) if e is not None), None)
        tiebreak = last.finish_order if last is not None and last.status == ResultStatus.FINISH else None

        return AggregateRow(
            rider_id=rider_id,
            points=points,
            penalty=counted_penalty,
            total_point=total,
            status=self._status(entries, counted_penalty or 0, is_absent),
            tiebreak=tiebreak,
        )

    def _status(self, entries: Sequence[HeatEntry | None], penalty: int, is_absent: bool) -> RiderStatus:
        statuses = [e.status if e is not None else None for e in entries]
        if penalty >= self.dq_threshold:
            return RiderStatus.DQ
        if is_absent:
            return RiderStatus.DNS
        if ResultStatus.DNS in statuses:
            return RiderStatus.DNS
        if ResultStatus.DNF in statuses:
            return RiderStatus.DNF
        if statuses and all(s == ResultStatus.FINISH for s in statuses):
            return RiderStatus.FINISHED
        return RiderStatus.DNS
