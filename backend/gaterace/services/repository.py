# backend/gaterace/services/repository.py
"""
Синхронный репозиторий поверх SQLAlchemy Session.

Движок сам ничего не читает из БД: всё чтение/запись ростеров, результатов,
штрафов и строк стадий идёт через этот класс. Коммит делает сервис,
один раз в конце операции.
"""

from typing import Dict, Iterable, List, Sequence

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.orm import Session

from ..domain.enums import Gender, ParticipationStatus, PenaltyStage, Stage
from ..domain.identifiers import HeatKey
from ..domain.scoring import HeatEntry
from ..domain.stages import StageTier
from ..models import (
    Category,
    Event,
    GateAssignment,
    Heat,
    HeatResult,
    HeatRider,
    Rider,
    RiderExtraCategory,
    RiderPenalty,
    StageResult,
    StageRule,
)


class RaceRepository:
    def __init__(self, db: Session):
        self.db = db

    # --- транзакция -------------------------------------------------

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    # --- сущности ---------------------------------------------------

    def get_event(self, event_id: int) -> Event | None:
        return self.db.get(Event, event_id)

    def get_category(self, category_id: int) -> Category | None:
        return self.db.get(Category, category_id)

    def get_heat(self, heat_id: int) -> Heat | None:
        return self.db.get(Heat, heat_id)

    def get_penalty(self, penalty_id: int) -> RiderPenalty | None:
        return self.db.get(RiderPenalty, penalty_id)

    def riders_by_id(self, rider_ids: Iterable[int]) -> Dict[int, Rider]:
        ids = list(set(rider_ids))
        if not ids:
            return {}
        rows = self.db.scalars(select(Rider).where(Rider.id.in_(ids))).all()
        return {r.id: r for r in rows}

    # --- гонщики категории -------------------------------------------

    def _eligible_filter(self, category: Category):
        base = and_(
            Rider.event_id == category.event_id,
            Rider.birth_year >= category.year_min,
            Rider.birth_year <= category.year_max,
        )
        if category.gender != Gender.MIX:
            base = and_(base, Rider.gender == category.gender)

        extra_ids = select(RiderExtraCategory.rider_id).where(
            RiderExtraCategory.category_id == category.id
        )
        return or_(base, and_(Rider.event_id == category.event_id, Rider.id.in_(extra_ids)))

    def eligible_riders(self, category: Category) -> List[Rider]:
        stmt = (
            select(Rider)
            .where(self._eligible_filter(category))
            .order_by(Rider.plate_number.asc(), Rider.plate_display.asc(), Rider.id.asc())
        )
        return list(self.db.scalars(stmt).all())

    def count_eligible_riders(self, category: Category) -> int:
        stmt = select(func.count(Rider.id)).where(self._eligible_filter(category))
        return int(self.db.scalar(stmt) or 0)

    def absent_riders(self, rider_ids: Iterable[int]) -> set[int]:
        ids = list(rider_ids)
        if not ids:
            return set()
        stmt = select(Rider.id).where(
            Rider.id.in_(ids),
            Rider.participation_status == ParticipationStatus.ABSENT,
        )
        return set(self.db.scalars(stmt).all())

    # --- правила стадий ----------------------------------------------

    def stage_tiers(self, category_id: int) -> List[StageTier]:
        rules = self.db.scalars(
            select(StageRule).where(StageRule.category_id == category_id)
        ).all()
        return [
            StageTier(
                min_riders=r.min_riders,
                enable_qualification=bool(r.enable_qualification),
                enable_quarter_final=bool(r.enable_quarter_final),
                enable_semi_final=bool(r.enable_semi_final),
                final_classes=tuple(r.enabled_final_classes or ()),
            )
            for r in rules
        ]

    def replace_stage_rules(self, category_id: int, tiers: Sequence[StageTier]) -> None:
        self.db.execute(delete(StageRule).where(StageRule.category_id == category_id))
        for tier in tiers:
            self.db.add(
                StageRule(
                    category_id=category_id,
                    min_riders=tier.min_riders,
                    enable_qualification=tier.enable_qualification,
                    enable_quarter_final=tier.enable_quarter_final,
                    enable_semi_final=tier.enable_semi_final,
                    enabled_final_classes=list(tier.final_classes),
                )
            )

    # --- заезды -------------------------------------------------------

    def list_heats(self, category_id: int) -> List[Heat]:
        stmt = select(Heat).where(Heat.category_id == category_id).order_by(Heat.order.asc(), Heat.id.asc())
        return list(self.db.scalars(stmt).all())

    def heats_for_stage(self, category_id: int, stage: Stage) -> List[Heat]:
        return [h for h in self.list_heats(category_id) if h.key is not None and h.key.stage == stage]

    def next_heat_order(self, event_id: int) -> int:
        stmt = (
            select(func.max(Heat.order))
            .join(Category, Heat.category_id == Category.id)
            .where(Category.event_id == event_id)
        )
        return int(self.db.scalar(stmt) or 0) + 1

    def create_heat(self, category_id: int, key: HeatKey, order: int, rider_ids: Sequence[int]) -> Heat:
        heat = Heat.from_key(category_id, key, order)
        self.db.add(heat)
        self.db.flush()
        self.add_heat_riders(heat.id, rider_ids)
        return heat

    def add_heat_riders(self, heat_id: int, rider_ids: Sequence[int]) -> None:
        for rider_id in rider_ids:
            self.db.add(HeatRider(heat_id=heat_id, rider_id=rider_id))
            # flush по одному: порядок id = порядок добавления
            self.db.flush()

    def heat_roster(self, heat_id: int) -> List[int]:
        """Гонщики заезда в порядке добавления."""
        stmt = (
            select(HeatRider.rider_id)
            .where(HeatRider.heat_id == heat_id)
            .order_by(HeatRider.created_at.asc(), HeatRider.id.asc())
        )
        return list(self.db.scalars(stmt).all())

    def assigned_riders(self, heat_ids: Sequence[int]) -> set[int]:
        if not heat_ids:
            return set()
        stmt = select(HeatRider.rider_id).where(HeatRider.heat_id.in_(list(heat_ids)))
        return set(self.db.scalars(stmt).all())

    # --- старт ---------------------------------------------------------

    def gates(self, heat_ids: Sequence[int]) -> Dict[int, Dict[int, int]]:
        """heat_id -> {rider_id: gate}"""
        out: Dict[int, Dict[int, int]] = {hid: {} for hid in heat_ids}
        if not heat_ids:
            return out
        stmt = select(GateAssignment).where(GateAssignment.heat_id.in_(list(heat_ids)))
        for row in self.db.scalars(stmt).all():
            out[row.heat_id][row.rider_id] = row.gate_position
        return out

    def add_gates(self, heat_id: int, gates: Dict[int, int]) -> None:
        for rider_id, position in gates.items():
            self.db.add(GateAssignment(heat_id=heat_id, rider_id=rider_id, gate_position=position))
        self.db.flush()

    # --- результаты ----------------------------------------------------

    def results(self, heat_ids: Sequence[int]) -> Dict[int, Dict[int, HeatEntry]]:
        """heat_id -> {rider_id: HeatEntry}"""
        out: Dict[int, Dict[int, HeatEntry]] = {hid: {} for hid in heat_ids}
        if not heat_ids:
            return out
        stmt = select(HeatResult).where(HeatResult.heat_id.in_(list(heat_ids)))
        for row in self.db.scalars(stmt).all():
            out[row.heat_id][row.rider_id] = HeatEntry(
                rider_id=row.rider_id,
                status=row.status,
                finish_order=row.finish_order,
            )
        return out

    def upsert_results(self, heat_id: int, entries: Sequence[HeatEntry]) -> None:
        existing = {
            row.rider_id: row
            for row in self.db.scalars(select(HeatResult).where(HeatResult.heat_id == heat_id)).all()
        }
        for entry in entries:
            row = existing.get(entry.rider_id)
            if row is None:
                row = HeatResult(heat_id=heat_id, rider_id=entry.rider_id)
                self.db.add(row)
            row.status = entry.status
            row.finish_order = entry.finish_order
        self.db.flush()

    def delete_results(self, heat_id: int) -> int:
        res = self.db.execute(delete(HeatResult).where(HeatResult.heat_id == heat_id))
        return res.rowcount or 0

    # --- штрафы ---------------------------------------------------------

    def add_penalty(self, penalty: RiderPenalty) -> RiderPenalty:
        self.db.add(penalty)
        self.db.flush()
        return penalty

    def approved_penalty_sums(
        self,
        event_id: int,
        rider_ids: Iterable[int],
        stage: PenaltyStage = PenaltyStage.MOTO,
    ) -> Dict[int, int]:
        ids = list(rider_ids)
        if not ids:
            return {}
        stmt = (
            select(RiderPenalty.rider_id, func.sum(RiderPenalty.penalty_point))
            .where(
                RiderPenalty.event_id == event_id,
                RiderPenalty.rider_id.in_(ids),
                RiderPenalty.approved.is_(True),
                RiderPenalty.stage.in_([stage, PenaltyStage.ALL]),
            )
            .group_by(RiderPenalty.rider_id)
        )
        return {rider_id: int(total or 0) for rider_id, total in self.db.execute(stmt).all()}

    # --- строки стадий ---------------------------------------------------

    def stage_results(self, category_id: int, stages: Sequence[Stage] | None = None) -> List[StageResult]:
        stmt = select(StageResult).where(StageResult.category_id == category_id)
        if stages:
            stmt = stmt.where(StageResult.stage.in_(list(stages)))
        return list(self.db.scalars(stmt.order_by(StageResult.id.asc())).all())

    def delete_stage_results(
        self,
        category_id: int,
        stages: Sequence[Stage],
        rider_ids: Iterable[int] | None = None,
    ) -> None:
        stmt = delete(StageResult).where(
            StageResult.category_id == category_id,
            StageResult.stage.in_(list(stages)),
        )
        if rider_ids is not None:
            ids = list(rider_ids)
            if not ids:
                return
            stmt = stmt.where(StageResult.rider_id.in_(ids))
        self.db.execute(stmt)

    def delete_pending_advances(
        self,
        category_id: int,
        targets: Sequence[tuple],
        rider_ids: Iterable[int],
    ) -> None:
        """Строки "прошёл в" без места; строки с местом из заезда не трогаем."""
        ids = list(rider_ids)
        if not ids or not targets:
            return
        clauses = []
        for stage, final_class in targets:
            if final_class is None:
                clauses.append(and_(StageResult.stage == stage, StageResult.final_class.is_(None)))
            else:
                clauses.append(and_(StageResult.stage == stage, StageResult.final_class == final_class))
        stmt = delete(StageResult).where(
            StageResult.category_id == category_id,
            StageResult.rider_id.in_(ids),
            StageResult.position.is_(None),
            or_(*clauses),
        )
        self.db.execute(stmt)

    def add_stage_results(self, rows: Sequence[StageResult]) -> None:
        self.db.add_all(rows)
        self.db.flush()
