# backend/gaterace/services/penalties.py

import logging
from dataclasses import dataclass

from ..core.errors import NotFoundError, Outcome, RaceError, ValidationError
from ..domain.enums import PenaltyStage
from ..domain.lifecycle import assert_editable
from ..models import RiderPenalty
from .repository import RaceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PenaltyDefinition:
    code: str
    category: str          # Technical / Safety / Conduct
    label: str
    points: int
    automatic_action: str  # none / warning / start_back / position_drop / DNF / DQ


PENALTY_DEFINITIONS = [
    PenaltyDefinition("SAFETY_HELM_STRAP", "Safety", "Helmet strap not fastened at gate start", 3, "start_back"),
    PenaltyDefinition("SAFETY_HELM_NON_STANDARD", "Safety", "Non-standard or unsafe helmet", 5, "DNF"),
    PenaltyDefinition("TECH_PLATE_NOT_VISIBLE", "Technical", "Number plate not visible", 2, "none"),
    PenaltyDefinition("SAFETY_DANGEROUS_ACCESSORY", "Safety", "Dangerous accessory on helmet or bike", 4, "DNF"),
    PenaltyDefinition("SAFETY_NO_GLOVES", "Safety", "Gloves not worn", 1, "warning"),
    PenaltyDefinition("SAFETY_SHOES_OPEN", "Safety", "Open shoes or sandals", 2, "warning"),
    PenaltyDefinition("SAFETY_NO_ELBOW_GUARD", "Safety", "Elbow guards not worn", 2, "warning"),
    PenaltyDefinition("SAFETY_NO_KNEE_GUARD", "Safety", "Knee guards not worn", 2, "warning"),
    PenaltyDefinition("CONDUCT_FALSE_START", "Conduct", "False start", 2, "none"),
    PenaltyDefinition("CONDUCT_BLOCKING", "Conduct", "Blocking or cutting another rider's line", 2, "none"),
    PenaltyDefinition("CONDUCT_DANGEROUS_PUSH", "Conduct", "Dangerous push", 5, "DNF"),
    PenaltyDefinition("CONDUCT_PARENT_ON_TRACK", "Conduct", "Parent entered the track during the race", 5, "DQ"),
]

_BY_CODE = {d.code: d for d in PENALTY_DEFINITIONS}


def definition_for(code: str) -> PenaltyDefinition | None:
    return _BY_CODE.get(code)


def add_penalty(
    repo: RaceRepository,
    event_id: int,
    rider_id: int,
    rule_code: str,
    stage: PenaltyStage = PenaltyStage.MOTO,
    penalty_point: int | None = None,
    heat_id: int | None = None,
    note: str | None = None,
) -> Outcome:
    """Штраф гонщику. Если указан заезд - он должен быть редактируемым."""
    try:
        if repo.get_event(event_id) is None:
            raise NotFoundError("Event not found")
        if heat_id is not None:
            heat = repo.get_heat(heat_id)
            if heat is None:
                raise NotFoundError("Heat not found")
            assert_editable(heat.status)

        if penalty_point is None:
            definition = definition_for(rule_code)
            if definition is None:
                raise ValidationError(f"Unknown penalty code: {rule_code}")
            penalty_point = definition.points
        if penalty_point < 0:
            raise ValidationError("penalty_point must be >= 0")

        penalty = repo.add_penalty(
            RiderPenalty(
                event_id=event_id,
                rider_id=rider_id,
                heat_id=heat_id,
                stage=PenaltyStage(stage),
                rule_code=rule_code,
                penalty_point=penalty_point,
                note=note,
                approved=False,
            )
        )
        repo.commit()
    except RaceError as err:
        repo.rollback()
        logger.warning("penalty rejected for rider %s: %s", rider_id, err.message)
        return Outcome.reject(err)

    logger.info("penalty %s (%s pts) added for rider %s", rule_code, penalty_point, rider_id)
    return Outcome.success(penalty_id=penalty.id, penalty_point=penalty_point)


def approve_penalty(repo: RaceRepository, penalty_id: int) -> Outcome:
    try:
        penalty = repo.get_penalty(penalty_id)
        if penalty is None:
            raise NotFoundError("Penalty not found")
        if penalty.heat_id is not None:
            heat = repo.get_heat(penalty.heat_id)
            if heat is not None:
                assert_editable(heat.status)
        penalty.approved = True
        repo.commit()
    except RaceError as err:
        repo.rollback()
        return Outcome.reject(err)

    return Outcome.success(penalty_id=penalty_id)
