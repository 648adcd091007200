# backend/gaterace/domain/lineup.py

import random
from typing import Dict, List, Sequence, TypeVar

from ..core.errors import ValidationError

T = TypeVar("T")

MIN_BATCH_SIZE = 4
MAX_BATCH_SIZE = 8


def chunk(items: Sequence[T], size: int) -> List[List[T]]:
    """Режем список на куски по size (последний может быть короче)."""
    if size < 1:
        raise ValueError("chunk size must be positive")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def clamp_batch_size(batch_size: int | None, default: int = MAX_BATCH_SIZE) -> int:
    size = default if batch_size is None else int(batch_size)
    return max(MIN_BATCH_SIZE, min(MAX_BATCH_SIZE, size))


def chunk_riders(rider_ids: Sequence[T], batch_size: int | None = None) -> List[List[T]]:
    return chunk(rider_ids, clamp_batch_size(batch_size))


def heats_per_batch(roster_size: int) -> int:
    """Третий мото только для маленьких полей (<= 8)."""
    return 3 if roster_size <= MAX_BATCH_SIZE else 2


def gate_order(roster: Sequence[T], heat_index: int, rng: random.Random | None = None) -> List[T]:
    """
    Порядок на старте для мото heat_index:
      1 -> как в списке
      2 -> в обратном порядке
      3 -> случайная перестановка
    """
    if heat_index == 1:
        return list(roster)
    if heat_index == 2:
        return list(reversed(roster))
    if heat_index == 3:
        shuffled = list(roster)
        (rng or random).shuffle(shuffled)
        return shuffled
    raise ValueError(f"heat index must be 1..3, got {heat_index}")


def assign_gates(roster: Sequence[T], heat_index: int, rng: random.Random | None = None) -> Dict[T, int]:
    """rider -> позиция на старте (1..N)."""
    ordered = gate_order(roster, heat_index, rng)
    return {rider: pos for pos, rider in enumerate(ordered, start=1)}


def is_gate_permutation(gates: Dict[T, int]) -> bool:
    return sorted(gates.values()) == list(range(1, len(gates) + 1))


def validate_draw(selected: Sequence[T], eligible: Sequence[T]) -> None:
    """Проверка списка для жеребьёвки: без дублей и только допущенные гонщики."""
    if not selected:
        raise ValidationError("rider_ids required")
    if len(set(selected)) != len(selected):
        raise ValidationError("Duplicate rider_ids detected")
    allowed = set(eligible)
    if any(rider not in allowed for rider in selected):
        raise ValidationError("rider_ids contains invalid rider")
