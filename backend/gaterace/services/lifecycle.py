# backend/gaterace/services/lifecycle.py

import logging

from ..core.errors import NotFoundError, Outcome, RaceError
from ..db import utcnow
from ..domain.lifecycle import check_publish, check_transition, next_race_control_status
from .repository import RaceRepository

logger = logging.getLogger(__name__)


def _load(repo: RaceRepository, heat_id: int):
    heat = repo.get_heat(heat_id)
    if heat is None:
        raise NotFoundError("Heat not found")
    return heat


def change_status(repo: RaceRepository, heat_id: int, target: str) -> Outcome:
    """Судейский переход: протест или блокировка."""
    try:
        heat = _load(repo, heat_id)
        previous = heat.status
        heat.status = check_transition(heat.status, target)
        repo.commit()
    except RaceError as err:
        repo.rollback()
        logger.warning("heat %s: transition to %s rejected: %s", heat_id, target, err.message)
        return Outcome.reject(err)

    logger.info("heat %s: %s -> %s", heat_id, previous.value, heat.status.value)
    return Outcome.success(status=heat.status.value)


def progress(repo: RaceRepository, heat_id: int) -> Outcome:
    """Race control: UPCOMING -> LIVE -> PROVISIONAL."""
    try:
        heat = _load(repo, heat_id)
        heat.status = next_race_control_status(heat.status)
        repo.commit()
    except RaceError as err:
        repo.rollback()
        return Outcome.reject(err)

    logger.info("heat %s: now %s", heat_id, heat.status.value)
    return Outcome.success(status=heat.status.value)


def publish(repo: RaceRepository, heat_id: int) -> Outcome:
    try:
        heat = _load(repo, heat_id)
        check_publish(heat.status, heat.is_published)
        heat.is_published = True
        heat.published_at = utcnow()
        repo.commit()
    except RaceError as err:
        repo.rollback()
        return Outcome.reject(err)

    return Outcome.success(published=True)
