# backend/gaterace/api/schemas.py
"""Тела запросов админки и судейской."""

import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from ..domain.enums import (
    FinalClass,
    Gender,
    HeatStatus,
    ParticipationStatus,
    PenaltyStage,
    ResultStatus,
)


class EventIn(BaseModel):
    name: str
    date: datetime.date
    location: str | None = None
    description: str | None = None


class CategoryIn(BaseModel):
    label: str
    year_min: int
    year_max: int
    gender: Gender = Gender.MIX
    advanced_race_enabled: bool = True
    max_riders_per_race: int = Field(8, ge=1)
    stage_override: Dict[str, Any] | None = None


class RiderIn(BaseModel):
    name: str
    plate_number: int
    plate_display: str | None = None
    birth_year: int
    gender: Gender
    club: str | None = None
    participation_status: ParticipationStatus = ParticipationStatus.ACTIVE
    # дополнительные категории вне года/пола
    extra_category_ids: List[int] = []


class StageRuleIn(BaseModel):
    min_riders: int = Field(..., ge=0)
    enable_qualification: bool = False
    enable_quarter_final: bool = False
    enable_semi_final: bool = False
    enabled_final_classes: List[FinalClass] = []


class LiveDrawIn(BaseModel):
    rider_ids: List[int]
    batch_size: int | None = None


class ResultIn(BaseModel):
    rider_id: int
    status: ResultStatus = ResultStatus.FINISH
    finish_order: int | None = None


class ResultsIn(BaseModel):
    results: List[ResultIn]


class StatusIn(BaseModel):
    status: HeatStatus


class PenaltyIn(BaseModel):
    event_id: int
    rider_id: int
    rule_code: str
    stage: PenaltyStage = PenaltyStage.MOTO
    penalty_point: int | None = None
    heat_id: int | None = None
    note: str | None = None
