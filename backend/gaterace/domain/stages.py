# backend/gaterace/domain/stages.py

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Sequence

from .enums import FinalClass, Stage

logger = logging.getLogger(__name__)

NO_RULE_MATCHED = "No rule matched. Using default (disabled)."
CATEGORY_NOT_FOUND = "Category not found. Resolver skipped."


@dataclass(frozen=True)
class StageTier:
    min_riders: int
    enable_qualification: bool = False
    enable_quarter_final: bool = False
    enable_semi_final: bool = False
    final_classes: tuple = ()


@dataclass
class StageResolution:
    category_id: int | None
    total_riders: int = 0
    enable_qualification: bool = False
    enable_quarter_final: bool = False
    enable_semi_final: bool = False
    final_classes: List[str] = field(default_factory=list)
    source: str = "default"            # override / rule / default
    warning: str | None = None

    def permits(self, stage: Stage, final_class: str | None = None) -> bool:
        if stage == Stage.QUALIFICATION:
            return self.enable_qualification
        if stage == Stage.QUARTER_FINAL:
            return self.enable_quarter_final
        if stage == Stage.SEMI_FINAL:
            return self.enable_semi_final
        return final_class is not None and _class_value(final_class) in self.final_classes

    def as_dict(self) -> dict:
        return {
            "category_id": self.category_id,
            "total_riders": self.total_riders,
            "stages": {
                "enableQualification": self.enable_qualification,
                "enableQuarterFinal": self.enable_quarter_final,
                "enableSemiFinal": self.enable_semi_final,
            },
            "final_classes": list(self.final_classes),
            "source": self.source,
            "warning": self.warning,
        }


def _class_value(final_class: Any) -> str:
    if isinstance(final_class, FinalClass):
        return final_class.value
    return str(final_class).upper()


def disabled(category_id: int | None, total_riders: int, warning: str) -> StageResolution:
    logger.warning("category %s: %s", category_id, warning)
    return StageResolution(category_id=category_id, total_riders=total_riders, warning=warning)


def select_tier(tiers: Sequence[StageTier], total_riders: int) -> StageTier | None:
    """Правило с максимальным min_riders, не превышающим число гонщиков."""
    matching = [t for t in tiers if t.min_riders <= total_riders]
    if not matching:
        return None
    return max(matching, key=lambda t: t.min_riders)


def resolve_stages(
    category_id: int | None,
    total_riders: int,
    tiers: Sequence[StageTier],
    override: Mapping[str, Any] | None = None,
) -> StageResolution:
    """Какие стадии включены для категории. Никогда не бросает исключений."""
    if override is not None:
        return StageResolution(
            category_id=category_id,
            total_riders=total_riders,
            enable_qualification=bool(override.get("enableQualification", False)),
            enable_quarter_final=bool(override.get("enableQuarterFinal", False)),
            enable_semi_final=bool(override.get("enableSemiFinal", False)),
            final_classes=[_class_value(c) for c in override.get("enabledFinalClasses") or []],
            source="override",
        )

    tier = select_tier(tiers, total_riders)
    if tier is None:
        return disabled(category_id, total_riders, NO_RULE_MATCHED)

    return StageResolution(
        category_id=category_id,
        total_riders=total_riders,
        enable_qualification=tier.enable_qualification,
        enable_quarter_final=tier.enable_quarter_final,
        enable_semi_final=tier.enable_semi_final,
        final_classes=[_class_value(c) for c in tier.final_classes],
        source="rule",
    )
