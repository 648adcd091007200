# backend/gaterace/services/live_score.py
"""
Табло категории: таблицы батчей квалификации и заезды следующих стадий.
Ничего не пишет в БД, только читает.
"""

from typing import Any, Dict, List

from ..core.config import get_settings
from ..core.errors import NotFoundError
from ..domain.bracket import final_winners
from ..domain.enums import FINAL_CLASS_ORDER, Stage
from ..domain.scoring import BatchAggregator, heat_point
from .batches import load_batches
from .repository import RaceRepository


def _rider_info(riders, rider_id: int) -> Dict[str, Any]:
    rider = riders.get(rider_id)
    return {
        "rider_id": rider_id,
        "name": rider.name if rider else "-",
        "plate": rider.plate if rider else "-",
        "club": rider.club if rider else None,
    }


def batch_tables(repo: RaceRepository, category_id: int) -> List[Dict[str, Any]]:
    category = repo.get_category(category_id)
    settings = get_settings()
    aggregator = BatchAggregator(settings.DQ_PENALTY_THRESHOLD, settings.DNS_POINT)

    tables = []
    for batch in load_batches(repo, category_id):
        riders = repo.riders_by_id(batch.riders)
        penalties = repo.approved_penalty_sums(category.event_id, batch.riders)
        absent = repo.absent_riders(batch.riders)
        aggregated = {
            row.rider_id: row
            for row in aggregator.aggregate(batch.riders, batch.sheets(), penalties, absent)
        }

        rows = []
        # строки в порядке старта первого мото, место - отдельной колонкой
        for rider_id in batch.riders:
            agg = aggregated[rider_id]
            row = _rider_info(riders, rider_id)
            row.update(
                {
                    "gates": {idx: batch.gates.get(idx, {}).get(rider_id) for idx in sorted(batch.heats)},
                    "points": agg.points,
                    "penalty": agg.penalty,
                    "total": agg.total_point,
                    "status": agg.status.value,
                    "rank": agg.rank,
                    "display_class": agg.display_class,
                }
            )
            rows.append(row)

        tables.append(
            {
                "batch_index": batch.batch_index,
                "heats": [
                    {"heat_index": idx, "heat_id": heat.id, "name": heat.name, "status": heat.status.value}
                    for idx, heat in sorted(batch.heats.items())
                ],
                "complete": batch.is_complete,
                "rows": rows,
            }
        )
    return tables


def stage_heat_tables(repo: RaceRepository, category_id: int) -> List[Dict[str, Any]]:
    heats = [
        h for h in repo.list_heats(category_id)
        if h.key is not None and h.key.stage != Stage.QUALIFICATION
    ]
    heat_ids = [h.id for h in heats]
    gates = repo.gates(heat_ids)
    results = repo.results(heat_ids)
    dns_point = get_settings().DNS_POINT

    tables = []
    for heat in heats:
        roster = repo.heat_roster(heat.id)
        riders = repo.riders_by_id(roster)
        heat_gates = gates.get(heat.id, {})
        heat_results = results.get(heat.id, {})

        rows = []
        for rider_id in sorted(roster, key=lambda rid: heat_gates.get(rid, len(roster) + 1)):
            entry = heat_results.get(rider_id)
            row = _rider_info(riders, rider_id)
            row.update(
                {
                    "gate": heat_gates.get(rider_id),
                    "point": heat_point(entry, len(heat_gates) or len(roster), dns_point),
                    "finish_order": entry.finish_order if entry else None,
                    "status": entry.status.value if entry else None,
                }
            )
            rows.append(row)

        tables.append(
            {
                "heat_id": heat.id,
                "name": heat.name,
                "stage": heat.key.stage.value,
                "status": heat.status.value,
                "is_published": heat.is_published,
                "rows": rows,
            }
        )
    return tables


def live_score(repo: RaceRepository, category_id: int) -> Dict[str, Any]:
    category = repo.get_category(category_id)
    if category is None:
        raise NotFoundError("Category not found")

    return {
        "category_id": category.id,
        "label": category.label,
        "batches": batch_tables(repo, category_id),
        "stage_heats": stage_heat_tables(repo, category_id),
    }


def stage_results_view(repo: RaceRepository, category_id: int) -> Dict[str, Any]:
    """Кто куда прошёл + победители финалов."""
    category = repo.get_category(category_id)
    if category is None:
        raise NotFoundError("Category not found")

    rows = repo.stage_results(category_id)
    riders = repo.riders_by_id(r.rider_id for r in rows)

    stages: Dict[str, List[Dict[str, Any]]] = {stage.value: [] for stage in Stage}
    finals: Dict[Any, Dict[int, int | None]] = {}
    for r in rows:
        item = _rider_info(riders, r.rider_id)
        item.update(
            {
                "batch_index": r.batch_index,
                "final_class": r.final_class.value if r.final_class else None,
                "position": r.position,
                "points": r.points,
            }
        )
        stages[r.stage.value].append(item)
        if r.stage == Stage.FINAL and r.final_class is not None:
            finals.setdefault(r.final_class, {})[r.rider_id] = r.position

    for items in stages.values():
        items.sort(key=lambda i: (i["batch_index"] or 0, i["position"] is None, i["position"] or 0))

    winners = final_winners(finals)
    return {
        "category_id": category.id,
        "label": category.label,
        "stages": stages,
        "winners": [
            {"final_class": fc.value, **_rider_info(riders, winners[fc])}
            for fc in FINAL_CLASS_ORDER
            if fc in winners
        ],
    }

