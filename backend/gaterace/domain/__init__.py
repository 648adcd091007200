# backend/gaterace/domain/__init__.py

from .enums import (  # noqa: F401
    FinalClass,
    Gender,
    HeatStatus,
    ParticipationStatus,
    PenaltyStage,
    ResultStatus,
    RiderStatus,
    Stage,
)
from .identifiers import HeatKey, parse_heat_name  # noqa: F401
from .scoring import AggregateRow, BatchAggregator, HeatEntry, HeatSheet, heat_point  # noqa: F401
from .stages import StageResolution, StageTier, resolve_stages  # noqa: F401
