# backend/gaterace/services/bracket.py
"""
Движок сетки для одной категории.

Три прохода:
  compute_qualification  - инкрементально, только по полным батчам;
  generate_stage_heats   - создаёт заезды 1/4, 1/2 и финалы (идемпотентно);
  compute_elimination    - полный пересчёт 1/4, 1/2 и финалов по результатам.

Проходы одной категории выполняются строго по очереди (CategoryLocks).
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Tuple

from ..core.config import Settings, get_settings
from ..core.errors import ConfigurationError, DataIncompleteError, NotFoundError, Outcome
from ..domain import lineup
from ..domain.bracket import (
    final_winners,
    plan_heats,
    quarter_final_advances,
    qualification_advances,
    qualification_targets,
    rank_by_finish_order,
    semi_final_advances,
    validate_final_assignments,
)
from ..domain.enums import FINAL_CLASS_ORDER, FinalClass, Stage
from ..domain.identifiers import HeatKey
from ..domain.scoring import BatchAggregator
from ..models import Heat, StageResult
from .batches import load_batches
from .repository import RaceRepository
from .stage_resolver import resolve_category

logger = logging.getLogger(__name__)

ELIMINATION_STAGES = [Stage.QUARTER_FINAL, Stage.SEMI_FINAL, Stage.FINAL]


class CategoryLocks:
    """Один мьютекс на категорию: пересчёты одной категории не пересекаются."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.RLock] = {}

    def for_category(self, category_id: int) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(category_id)
            if lock is None:
                lock = self._locks[category_id] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, category_id: int) -> Iterator[None]:
        lock = self.for_category(category_id)
        with lock:
            yield


category_locks = CategoryLocks()


def _unique(items) -> List[int]:
    seen = set()
    out = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


class BracketEngine:
    def __init__(
        self,
        repo: RaceRepository,
        settings: Settings | None = None,
        locks: CategoryLocks | None = None,
    ):
        self.repo = repo
        self.settings = settings or get_settings()
        self.locks = locks or category_locks

    # --- общие проверки ---------------------------------------------

    def _category(self, category_id: int):
        category = self.repo.get_category(category_id)
        if category is None:
            raise ConfigurationError("Category not found.")
        if not category.advanced_race_enabled:
            raise ConfigurationError("Advanced race disabled.")
        return category

    def _run(self, category_id: int, compute: Callable[[int], Outcome]) -> Outcome:
        """Ошибка настройки категории -> предупреждение, а не исключение."""
        with self.locks.hold(category_id):
            try:
                return compute(category_id)
            except ConfigurationError as err:
                self.repo.rollback()
                logger.warning("category %s: %s", category_id, err.message)
                return Outcome.warn(err.message)

    # --- квалификация ------------------------------------------------

    def compute_qualification(self, category_id: int) -> Outcome:
        return self._run(category_id, self._compute_qualification)

    def _compute_qualification(self, category_id: int) -> Outcome:
        category = self._category(category_id)

        resolution = resolve_category(self.repo, category_id)
        if not resolution.enable_qualification:
            raise ConfigurationError(resolution.warning or "Qualification disabled by resolver.")

        batches = [b for b in load_batches(self.repo, category_id) if b.has_required_heats]
        if not batches:
            logger.warning("category %s: no qualifying batches found", category_id)
            return Outcome.warn("No qualifying batches found.")

        complete = []
        skipped = []
        for batch in batches:
            try:
                batch.require_complete()
            except DataIncompleteError as err:
                logger.info("category %s: %s", category_id, err.message)
                skipped.append(batch.batch_index)
                continue
            complete.append(batch)

        aggregator = BatchAggregator(
            dq_threshold=self.settings.DQ_PENALTY_THRESHOLD,
            dns_point=self.settings.DNS_POINT,
        )

        # что уже лежит в базе: строки квалификации и ключи строк стадий
        stored_qualification: Dict[int, tuple] = {}
        stored_rows: Dict[tuple, StageResult] = {}
        for row in self.repo.stage_results(category_id):
            if row.stage == Stage.QUALIFICATION:
                stored_qualification[row.rider_id] = (row.batch_index, row.position, row.points)
            else:
                stored_rows[(row.rider_id, row.stage, row.final_class)] = row

        qualification_rows: List[StageResult] = []
        advances = []
        updated: List[int] = []
        rider_ids: List[int] = []
        for batch in complete:
            penalties = self.repo.approved_penalty_sums(category.event_id, batch.riders)
            absent = self.repo.absent_riders(batch.riders)
            rows = aggregator.aggregate(batch.riders, batch.sheets(), penalties, absent)

            ranked: List[Tuple[int, int]] = []
            fresh: Dict[int, tuple] = {}
            for row in rows:
                if row.rank is None:
                    continue
                ranked.append((row.rider_id, row.rank))
                fresh[row.rider_id] = (batch.batch_index, row.rank, row.total_point)
            batch_advances = qualification_advances(ranked, resolution)

            # батч не изменился и все его продвижения на месте - не трогаем
            current = {rid: stored_qualification[rid] for rid in batch.riders if rid in stored_qualification}
            missing = [
                adv for adv in batch_advances
                if (adv.rider_id, adv.stage, adv.final_class) not in stored_rows
            ]
            if fresh == current and not missing:
                continue

            updated.append(batch.batch_index)
            rider_ids.extend(batch.riders)
            advances.extend(batch_advances)
            for rider_id, (batch_index, position, points) in fresh.items():
                qualification_rows.append(
                    StageResult(
                        category_id=category_id,
                        rider_id=rider_id,
                        stage=Stage.QUALIFICATION,
                        batch_index=batch_index,
                        position=position,
                        points=points,
                    )
                )

        # строки с местом из заезда 1/4, 1/2 или финала остаются как есть
        targets = qualification_targets(resolution)
        affected = set(rider_ids)
        kept = {
            key for key, row in stored_rows.items()
            if key[0] in affected and (row.position is not None or (key[1], key[2]) not in targets)
        }
        advance_rows = [
            StageResult(
                category_id=category_id,
                rider_id=adv.rider_id,
                stage=adv.stage,
                final_class=adv.final_class,
            )
            for adv in advances
            if (adv.rider_id, adv.stage, adv.final_class) not in kept
        ]

        self.repo.delete_stage_results(category_id, [Stage.QUALIFICATION], rider_ids)
        self.repo.delete_pending_advances(category_id, targets, rider_ids)
        self.repo.add_stage_results(qualification_rows + advance_rows)
        self.repo.commit()

        logger.info(
            "category %s: qualification stored for batches %s (%s riders, %s advances)",
            category_id, updated, len(rider_ids), len(advance_rows),
        )
        return Outcome.success(
            batches=[b.batch_index for b in complete],
            updated_batches=updated,
            skipped_batches=skipped,
            riders=len(rider_ids),
            advances=len(advance_rows),
        )

    # --- создание заездов следующих стадий -----------------------------

    def generate_stage_heats(self, category_id: int) -> Outcome:
        return self._run(category_id, self._generate_stage_heats)

    def _create_heat(self, category_id: int, key: HeatKey, order: int, riders: List[int]) -> Heat:
        heat = self.repo.create_heat(category_id, key, order, riders)
        self.repo.add_gates(heat.id, lineup.assign_gates(riders, 1))
        logger.info("category %s: created %s with %s riders", category_id, key.name, len(riders))
        return heat

    def _generate_stage_heats(self, category_id: int) -> Outcome:
        category = self._category(category_id)

        resolution = resolve_category(self.repo, category_id)
        max_riders = max(4, category.max_riders_per_race or self.settings.MAX_RIDERS_PER_RACE)

        rows = self.repo.stage_results(category_id, ELIMINATION_STAGES)
        quarter = _unique(r.rider_id for r in rows if r.stage == Stage.QUARTER_FINAL)
        semi = _unique(r.rider_id for r in rows if r.stage == Stage.SEMI_FINAL)
        finals: Dict[FinalClass, List[int]] = {}
        for r in rows:
            if r.stage == Stage.FINAL and r.final_class is not None:
                bucket = finals.setdefault(r.final_class, [])
                if r.rider_id not in bucket:
                    bucket.append(r.rider_id)

        next_order = self.repo.next_heat_order(category.event_id)
        created: List[str] = []

        if quarter:
            existing = self.repo.heats_for_stage(category_id, Stage.QUARTER_FINAL)
            assigned = self.repo.assigned_riders([h.id for h in existing])
            pending = [rid for rid in quarter if rid not in assigned]
            for number, group in enumerate(plan_heats(pending, max_riders), start=len(existing) + 1):
                heat = self._create_heat(category_id, HeatKey.quarter_final(number), next_order, group)
                created.append(heat.name)
                next_order += 1

        if semi and not self.repo.heats_for_stage(category_id, Stage.SEMI_FINAL):
            for number, group in enumerate(plan_heats(semi, max_riders), start=1):
                heat = self._create_heat(category_id, HeatKey.semi_final(number), next_order, group)
                created.append(heat.name)
                next_order += 1

        # финал класса создаётся один раз, поздние батчи его не меняют
        existing_finals = {h.key.final_class for h in self.repo.heats_for_stage(category_id, Stage.FINAL)}
        for final_class in FINAL_CLASS_ORDER:
            riders = finals.get(final_class)
            if not riders or final_class in existing_finals:
                continue
            if not resolution.permits(Stage.FINAL, final_class):
                logger.info("category %s: final %s not enabled, skipped", category_id, final_class.value)
                continue
            heat = self._create_heat(category_id, HeatKey.final(final_class), next_order, riders)
            created.append(heat.name)
            next_order += 1

        self.repo.commit()
        return Outcome.success(created=created)

    # --- 1/4, 1/2, финалы ---------------------------------------------

    def compute_elimination(self, category_id: int) -> Outcome:
        return self._run(category_id, self._compute_elimination)

    def _compute_elimination(self, category_id: int) -> Outcome:
        category = self._category(category_id)

        quarter_heats = self.repo.heats_for_stage(category_id, Stage.QUARTER_FINAL)
        semi_heats = self.repo.heats_for_stage(category_id, Stage.SEMI_FINAL)
        final_heats = self.repo.heats_for_stage(category_id, Stage.FINAL)
        all_heats = quarter_heats + semi_heats + final_heats
        if not all_heats:
            return Outcome.warn("No stage heats found.")

        results = self.repo.results([h.id for h in all_heats])

        # (rider, stage, class) -> строка; строка по заезду важнее строки "прошёл в"
        rows: Dict[tuple, StageResult] = {}

        def put(rider_id, stage, final_class=None, position=None, points=None, from_heat=True):
            key = (rider_id, stage, final_class)
            if key in rows and not from_heat:
                return
            rows[key] = StageResult(
                category_id=category_id,
                rider_id=rider_id,
                stage=stage,
                final_class=final_class,
                position=position,
                points=points,
            )

        for stage, heats, advance in (
            (Stage.QUARTER_FINAL, quarter_heats, quarter_final_advances),
            (Stage.SEMI_FINAL, semi_heats, semi_final_advances),
        ):
            for heat in heats:
                roster = self.repo.heat_roster(heat.id)
                heat_results = results.get(heat.id, {})
                if not heat_results:
                    # заезд ещё не ехал: гонщики дошли до стадии, мест нет
                    for rider_id in roster:
                        put(rider_id, stage)
                    continue

                finishes = {
                    rid: heat_results[rid].finish_order if rid in heat_results else None
                    for rid in roster
                }
                ranked = rank_by_finish_order(finishes)
                for row in ranked:
                    put(row.rider_id, stage, position=row.rank, points=row.finish_order)
                for adv in advance(ranked):
                    put(adv.rider_id, adv.stage, adv.final_class, from_heat=False)

        finals: Dict[FinalClass, Dict[int, int | None]] = {}
        for heat in final_heats:
            final_class = heat.key.final_class
            heat_results = results.get(heat.id, {})
            for rider_id in self.repo.heat_roster(heat.id):
                entry = heat_results.get(rider_id)
                order = entry.finish_order if entry is not None else None
                put(rider_id, Stage.FINAL, final_class, position=order, points=order)
                finals.setdefault(final_class, {})[rider_id] = order

        self.repo.delete_stage_results(category_id, ELIMINATION_STAGES)
        self.repo.add_stage_results(list(rows.values()))
        self.repo.commit()

        warnings = []
        if finals:
            problem = validate_final_assignments(
                {fc: list(riders) for fc, riders in finals.items()},
                self.settings.MIN_FINAL_RACE_SIZE,
            )
            if problem:
                logger.warning("category %s: %s", category_id, problem)
                warnings.append(problem)

        winners = {fc.value: rider_id for fc, rider_id in final_winners(finals).items()}
        logger.info("category %s: elimination recomputed, %s rows", category_id, len(rows))
        return Outcome.success(rows=len(rows), warnings=warnings, winners=winners)

    # --- триггер после заезда -------------------------------------------

    def advance_after_heat(self, heat_id: int) -> Outcome:
        """
        Вызывается после записи результатов заезда.
        Мото 2/3 батча -> квалификация + создание заездов;
        заезд 1/4, 1/2 или финал -> пересчёт сетки + создание заездов.
        """
        heat = self.repo.get_heat(heat_id)
        if heat is None:
            return Outcome.reject(NotFoundError("Heat not found"))

        key = heat.key
        if key is None or (key.stage == Stage.QUALIFICATION and (key.heat_index or 0) < 2):
            return Outcome.success(skipped=True)

        def chain(category_id: int) -> Outcome:
            if key.stage == Stage.QUALIFICATION:
                first = self._compute_qualification(category_id)
            else:
                first = self._compute_elimination(category_id)
            if not first.ok:
                return first
            generated = self._generate_stage_heats(category_id)
            return Outcome.success(computed=first.data, stage_heats=generated.data)

        return self._run(heat.category_id, chain)
