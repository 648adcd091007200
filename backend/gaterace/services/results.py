# backend/gaterace/services/results.py

import logging
from typing import Sequence

from ..core.errors import NotFoundError, Outcome, RaceError
from ..domain.lifecycle import assert_editable
from ..domain.scoring import HeatEntry, validate_submission
from .repository import RaceRepository

logger = logging.getLogger(__name__)


def submit_results(repo: RaceRepository, heat_id: int, entries: Sequence[HeatEntry]) -> Outcome:
    """
    Запись результатов заезда.
    Либо применяется вся пачка, либо ничего (дубли мест, чужой гонщик,
    заблокированный заезд).
    """
    try:
        heat = repo.get_heat(heat_id)
        if heat is None:
            raise NotFoundError("Heat not found")
        assert_editable(heat.status)

        roster = repo.heat_roster(heat_id)
        stored = repo.results([heat_id]).get(heat_id, {})
        validate_submission(entries, roster, stored)

        repo.upsert_results(heat_id, entries)
        repo.commit()
    except RaceError as err:
        repo.rollback()
        logger.warning("results rejected for heat %s: %s", heat_id, err.message)
        return Outcome.reject(err)

    logger.info("heat %s: stored %s results", heat_id, len(entries))
    return Outcome.success(saved=len(entries))


def clear_results(repo: RaceRepository, heat_id: int) -> Outcome:
    try:
        heat = repo.get_heat(heat_id)
        if heat is None:
            raise NotFoundError("Heat not found")
        assert_editable(heat.status)
        deleted = repo.delete_results(heat_id)
        repo.commit()
    except RaceError as err:
        repo.rollback()
        return Outcome.reject(err)

    logger.info("heat %s: cleared %s results", heat_id, deleted)
    return Outcome.success(deleted=deleted)
