# backend/gaterace/domain/enums.py

import enum


class Stage(str, enum.Enum):
    QUALIFICATION = "QUALIFICATION"
    QUARTER_FINAL = "QUARTER_FINAL"
    SEMI_FINAL = "SEMI_FINAL"
    FINAL = "FINAL"


class FinalClass(str, enum.Enum):
    BEGINNER = "BEGINNER"
    AMATEUR = "AMATEUR"
    ACADEMY = "ACADEMY"
    ROOKIE = "ROOKIE"
    PRO = "PRO"
    NOVICE = "NOVICE"
    ELITE = "ELITE"


# порядок создания финальных заездов
FINAL_CLASS_ORDER = [
    FinalClass.BEGINNER,
    FinalClass.AMATEUR,
    FinalClass.ACADEMY,
    FinalClass.ROOKIE,
    FinalClass.PRO,
    FinalClass.NOVICE,
    FinalClass.ELITE,
]


class HeatStatus(str, enum.Enum):
    UPCOMING = "UPCOMING"
    LIVE = "LIVE"
    PROVISIONAL = "PROVISIONAL"
    PROTEST_REVIEW = "PROTEST_REVIEW"
    LOCKED = "LOCKED"


class ResultStatus(str, enum.Enum):
    FINISH = "FINISH"
    DNF = "DNF"
    DNS = "DNS"


class RiderStatus(str, enum.Enum):
    """Итоговый статус гонщика по батчу."""

    FINISHED = "FINISHED"
    DNF = "DNF"
    DNS = "DNS"
    DQ = "DQ"


class ParticipationStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    DNS = "DNS"
    DNF = "DNF"
    ABSENT = "ABSENT"


class Gender(str, enum.Enum):
    BOY = "BOY"
    GIRL = "GIRL"
    MIX = "MIX"


class PenaltyStage(str, enum.Enum):
    MOTO = "MOTO"
    QUARTER = "QUARTER"
    SEMI = "SEMI"
    FINAL = "FINAL"
    ALL = "ALL"
