# backend/gaterace/services/batches.py

from dataclasses import dataclass, field
from typing import Dict, List

from ..core.errors import DataIncompleteError
from ..domain.enums import Stage
from ..domain.scoring import HeatEntry, HeatSheet
from ..models import Heat
from .repository import RaceRepository


@dataclass
class BatchData:
    """Батч квалификации: мото 1..3, состав, старты и результаты."""

    batch_index: int
    heats: Dict[int, Heat] = field(default_factory=dict)          # heat_index -> Heat
    riders: List[int] = field(default_factory=list)
    gates: Dict[int, Dict[int, int]] = field(default_factory=dict)  # heat_index -> {rider: gate}
    results: Dict[int, Dict[int, HeatEntry]] = field(default_factory=dict)

    @property
    def has_required_heats(self) -> bool:
        return 1 in self.heats and 2 in self.heats

    @property
    def is_complete(self) -> bool:
        """Полный батч: в мото 1 и 2 есть результат у каждого гонщика."""
        if not self.has_required_heats or not self.riders:
            return False
        reported = len(self.results.get(1, {})) + len(self.results.get(2, {}))
        return reported >= len(self.riders) * 2

    def require_complete(self) -> None:
        if not self.is_complete:
            raise DataIncompleteError(f"Batch {self.batch_index} not complete yet, skipped")

    def sheets(self) -> List[HeatSheet]:
        sheets = []
        for heat_index in sorted(self.heats):
            gates = self.gates.get(heat_index, {})
            sheets.append(
                HeatSheet(
                    heat_index=heat_index,
                    # размер поля = сколько гонщиков стоит на старте заезда
                    field_size=len(gates) or len(self.riders),
                    results=self.results.get(heat_index, {}),
                )
            )
        return sheets


def load_batches(repo: RaceRepository, category_id: int) -> List[BatchData]:
    batches: Dict[int, BatchData] = {}
    for heat in repo.heats_for_stage(category_id, Stage.QUALIFICATION):
        key = heat.key
        batch = batches.setdefault(key.batch_index, BatchData(batch_index=key.batch_index))
        batch.heats[key.heat_index] = heat

    heat_ids = [h.id for b in batches.values() for h in b.heats.values()]
    gates = repo.gates(heat_ids)
    results = repo.results(heat_ids)

    for batch in batches.values():
        for heat_index, heat in batch.heats.items():
            batch.gates[heat_index] = gates.get(heat.id, {})
            batch.results[heat_index] = results.get(heat.id, {})

        first = batch.heats.get(1)
        if first is not None:
            roster = repo.heat_roster(first.id)
            gate1 = batch.gates.get(1, {})
            # порядок строк = старт первого мото, без старта - порядок добавления
            batch.riders = sorted(roster, key=lambda rid: (gate1.get(rid, len(roster) + 1), roster.index(rid)))

    return [batches[idx] for idx in sorted(batches)]
