# backend/gaterace/domain/lifecycle.py

from typing import Dict, FrozenSet

from ..core.errors import LifecycleViolation
from .enums import HeatStatus

LOCKED_MESSAGE = "Heat already locked. No modification allowed."
PROTEST_MESSAGE = "Heat under protest review. Modifications are frozen."

# переходы судейского контура (протест / блокировка)
REVIEW_TRANSITIONS: Dict[HeatStatus, FrozenSet[HeatStatus]] = {
    HeatStatus.PROVISIONAL: frozenset({HeatStatus.PROTEST_REVIEW, HeatStatus.LOCKED}),
    HeatStatus.PROTEST_REVIEW: frozenset({HeatStatus.LOCKED}),
}

# ход заезда со стороны race control: старт и финиш
RACE_CONTROL_TRANSITIONS: Dict[HeatStatus, HeatStatus] = {
    HeatStatus.UPCOMING: HeatStatus.LIVE,
    HeatStatus.LIVE: HeatStatus.PROVISIONAL,
}

FROZEN_STATES = frozenset({HeatStatus.LOCKED, HeatStatus.PROTEST_REVIEW})


def coerce_status(value) -> HeatStatus:
    if isinstance(value, HeatStatus):
        return value
    try:
        return HeatStatus(str(value or "").upper())
    except ValueError:
        raise LifecycleViolation(f"Unknown heat status: {value}")


def check_transition(current, target) -> HeatStatus:
    """Проверка перехода протест/блокировка. Возвращает новый статус."""
    current = coerce_status(current)
    target = coerce_status(target)

    if current == HeatStatus.LOCKED:
        raise LifecycleViolation(LOCKED_MESSAGE)
    if current == HeatStatus.LIVE and target == HeatStatus.LOCKED:
        raise LifecycleViolation("Invalid transition: LIVE cannot go directly to LOCKED.")
    if target not in REVIEW_TRANSITIONS.get(current, frozenset()):
        raise LifecycleViolation("Invalid status transition.")
    return target


def next_race_control_status(current) -> HeatStatus:
    current = coerce_status(current)
    target = RACE_CONTROL_TRANSITIONS.get(current)
    if target is None:
        raise LifecycleViolation(f"Heat cannot progress from {current.value}.")
    return target


def assert_editable(status) -> None:
    """Результаты, штрафы и safety-check нельзя менять в LOCKED и PROTEST_REVIEW."""
    status = coerce_status(status)
    if status == HeatStatus.LOCKED:
        raise LifecycleViolation(LOCKED_MESSAGE)
    if status == HeatStatus.PROTEST_REVIEW:
        raise LifecycleViolation(PROTEST_MESSAGE)


def is_editable(status) -> bool:
    return coerce_status(status) not in FROZEN_STATES


def check_publish(status, is_published: bool) -> None:
    if coerce_status(status) != HeatStatus.LOCKED:
        raise LifecycleViolation("Heat must be LOCKED before publication.")
    if is_published:
        raise LifecycleViolation("Heat already published.")
