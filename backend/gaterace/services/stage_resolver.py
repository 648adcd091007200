# backend/gaterace/services/stage_resolver.py

import logging
from typing import Any, Mapping

from sqlalchemy.exc import SQLAlchemyError

from ..domain.stages import CATEGORY_NOT_FOUND, StageResolution, disabled, resolve_stages
from .repository import RaceRepository

logger = logging.getLogger(__name__)


def resolve_category(
    repo: RaceRepository,
    category_id: int,
    override: Mapping[str, Any] | None = None,
) -> StageResolution:
    """
    Какие стадии включены для категории.
    Считает допущенных гонщиков и выбирает ступень правил; при любой
    проблеме возвращает "всё выключено" с предупреждением.
    """
    try:
        category = repo.get_category(category_id)
        if category is None:
            return disabled(category_id, 0, CATEGORY_NOT_FOUND)

        total = repo.count_eligible_riders(category)
        if override is None:
            override = category.stage_override

        resolution = resolve_stages(category_id, total, repo.stage_tiers(category_id), override)
    except SQLAlchemyError as exc:
        logger.exception("stage resolver failed for category %s", category_id)
        return disabled(category_id, 0, f"Resolver failed: {exc.__class__.__name__}")

    logger.info(
        "category %s: %s riders, source=%s, qualification=%s quarter=%s semi=%s finals=%s",
        category_id,
        resolution.total_riders,
        resolution.source,
        resolution.enable_qualification,
        resolution.enable_quarter_final,
        resolution.enable_semi_final,
        resolution.final_classes,
    )
    return resolution
