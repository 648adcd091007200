# backend/gaterace/services/lineup.py

import logging
import random
from typing import Any, Dict, List, Sequence

from ..core.config import get_settings
from ..core.errors import NotFoundError, Outcome, RaceError, ValidationError
from ..domain import lineup
from ..domain.enums import Stage
from ..domain.identifiers import HeatKey
from ..domain.lifecycle import is_editable
from .repository import RaceRepository

logger = logging.getLogger(__name__)


def live_draw(
    repo: RaceRepository,
    category_id: int,
    rider_ids: Sequence[int],
    batch_size: int | None = None,
    rng: random.Random | None = None,
) -> Outcome:
    """
    Жеребьёвка квалификации:
    - режем выбранных гонщиков на батчи;
    - на каждый батч создаём Moto 1/2 (и 3, если в категории <= 8 гонщиков);
    - раздаём старт: прямой, обратный, случайный.
    """
    try:
        category = repo.get_category(category_id)
        if category is None:
            raise NotFoundError("Category not found")

        eligible = [r.id for r in repo.eligible_riders(category)]
        lineup.validate_draw(list(rider_ids), eligible)

        if repo.list_heats(category_id):
            raise ValidationError("Heats already exist for this category. Live draw skipped.")

        size = lineup.clamp_batch_size(batch_size, get_settings().DEFAULT_BATCH_SIZE)
        batches = lineup.chunk_riders(list(rider_ids), size)
        heat_count = lineup.heats_per_batch(len(rider_ids))

        next_order = repo.next_heat_order(category.event_id)
        created = 0
        for batch_index, roster in enumerate(batches, start=1):
            for heat_index in range(1, heat_count + 1):
                heat = repo.create_heat(category_id, HeatKey.moto(heat_index, batch_index), next_order, roster)
                next_order += 1
                repo.add_gates(heat.id, lineup.assign_gates(roster, heat_index, rng))
                created += 1

        repo.commit()
    except RaceError as err:
        repo.rollback()
        logger.warning("live draw rejected for category %s: %s", category_id, err.message)
        return Outcome.reject(err)

    logger.info(
        "live draw for category %s: %s riders, %s batches, %s heats",
        category_id, len(rider_ids), len(batches), created,
    )
    return Outcome.success(batch_count=len(batches), heat_count=created)


def fill_missing_gates(
    repo: RaceRepository,
    category_id: int,
    rng: random.Random | None = None,
) -> int:
    """
    Достраивает старт для заездов без него (старые заезды).
    Уже розданный старт не трогаем никогда. Возвращает число заполненных заездов.
    """
    heats = repo.list_heats(category_id)
    existing = repo.gates([h.id for h in heats])

    filled = 0
    for heat in heats:
        if existing.get(heat.id):
            continue
        roster = repo.heat_roster(heat.id)
        if not roster:
            continue
        key = heat.key
        heat_index = key.heat_index if key is not None and key.stage == Stage.QUALIFICATION else 1
        repo.add_gates(heat.id, lineup.assign_gates(roster, heat_index, rng))
        filled += 1

    if filled:
        repo.commit()
        logger.info("category %s: filled gates for %s heats", category_id, filled)
    return filled


def gate_order(repo: RaceRepository, category_id: int) -> List[Dict[str, Any]]:
    """Старт по всем заездам категории (для судей и табло)."""
    fill_missing_gates(repo, category_id)

    heats = repo.list_heats(category_id)
    gates = repo.gates([h.id for h in heats])
    riders = repo.riders_by_id(rid for g in gates.values() for rid in g)

    data = []
    for heat in heats:
        rows = sorted(gates.get(heat.id, {}).items(), key=lambda item: item[1])
        data.append(
            {
                "heat_id": heat.id,
                "name": heat.name,
                "order": heat.order,
                "status": heat.status.value,
                "editable": is_editable(heat.status),
                "gates": [
                    {
                        "gate_position": position,
                        "rider_id": rider_id,
                        "name": riders[rider_id].name if rider_id in riders else "-",
                        "plate": riders[rider_id].plate if rider_id in riders else "-",
                    }
                    for rider_id, position in rows
                ],
            }
        )
    return data
