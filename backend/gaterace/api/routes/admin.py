# backend/gaterace/api/routes/admin.py

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ...domain.stages import StageTier
from ...models import Category, Event, Rider, RiderExtraCategory
from ...services import lineup
from ...services.bracket import BracketEngine
from ...services.repository import RaceRepository
from ...services.stage_resolver import resolve_category
from ..deps import get_repo, respond
from ..schemas import CategoryIn, EventIn, LiveDrawIn, RiderIn, StageRuleIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# --- вспомогательные функции --------------------------------------


def _event_or_404(repo: RaceRepository, event_id: int) -> Event:
    event = repo.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def _category_or_404(repo: RaceRepository, category_id: int) -> Category:
    category = repo.get_category(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


# --- события, категории, гонщики ----------------------------------


@router.post("/events")
async def create_event(payload: EventIn, repo: RaceRepository = Depends(get_repo)):
    event = Event(
        name=payload.name,
        date=payload.date,
        location=payload.location,
        description=payload.description,
    )
    repo.db.add(event)
    repo.commit()
    logger.info("event %s created: %s", event.id, event.name)
    return {"ok": True, "event_id": event.id}


@router.post("/events/{event_id}/categories")
async def create_category(
    event_id: int,
    payload: CategoryIn,
    repo: RaceRepository = Depends(get_repo),
):
    _event_or_404(repo, event_id)
    if payload.year_min > payload.year_max:
        raise HTTPException(status_code=400, detail="year_min must be <= year_max")

    category = Category(event_id=event_id, **payload.model_dump())
    repo.db.add(category)
    repo.commit()
    return {"ok": True, "category_id": category.id}


@router.post("/events/{event_id}/riders")
async def create_riders(
    event_id: int,
    payload: List[RiderIn],
    repo: RaceRepository = Depends(get_repo),
):
    _event_or_404(repo, event_id)

    rider_ids = []
    for item in payload:
        data = item.model_dump(exclude={"extra_category_ids"})
        rider = Rider(event_id=event_id, **data)
        repo.db.add(rider)
        repo.db.flush()
        for category_id in item.extra_category_ids:
            category = _category_or_404(repo, category_id)
            if category.event_id != event_id:
                repo.rollback()
                raise HTTPException(status_code=400, detail="Category belongs to another event")
            repo.db.add(RiderExtraCategory(rider_id=rider.id, category_id=category_id))
        rider_ids.append(rider.id)

    repo.commit()
    return {"ok": True, "rider_ids": rider_ids}


@router.put("/categories/{category_id}/rules")
async def replace_rules(
    category_id: int,
    payload: List[StageRuleIn],
    repo: RaceRepository = Depends(get_repo),
):
    _category_or_404(repo, category_id)
    tiers = [
        StageTier(
            min_riders=rule.min_riders,
            enable_qualification=rule.enable_qualification,
            enable_quarter_final=rule.enable_quarter_final,
            enable_semi_final=rule.enable_semi_final,
            final_classes=tuple(fc.value for fc in rule.enabled_final_classes),
        )
        for rule in payload
    ]
    repo.replace_stage_rules(category_id, tiers)
    repo.commit()
    return {"ok": True, "rules": len(tiers)}


@router.get("/categories/{category_id}/resolve")
async def resolve(category_id: int, repo: RaceRepository = Depends(get_repo)):
    return resolve_category(repo, category_id).as_dict()


# --- жеребьёвка и старт -------------------------------------------


@router.post("/categories/{category_id}/live-draw")
async def live_draw(
    category_id: int,
    payload: LiveDrawIn,
    repo: RaceRepository = Depends(get_repo),
):
    return respond(lineup.live_draw(repo, category_id, payload.rider_ids, payload.batch_size))


@router.get("/categories/{category_id}/gate-order")
async def gate_order(category_id: int, repo: RaceRepository = Depends(get_repo)):
    _category_or_404(repo, category_id)
    return {"ok": True, "heats": lineup.gate_order(repo, category_id)}


# --- пересчёт сетки ------------------------------------------------


@router.post("/categories/{category_id}/qualification")
async def compute_qualification(category_id: int, repo: RaceRepository = Depends(get_repo)):
    return respond(BracketEngine(repo).compute_qualification(category_id))


@router.post("/categories/{category_id}/stage-heats")
async def generate_stage_heats(category_id: int, repo: RaceRepository = Depends(get_repo)):
    return respond(BracketEngine(repo).generate_stage_heats(category_id))


@router.post("/categories/{category_id}/elimination")
async def compute_elimination(category_id: int, repo: RaceRepository = Depends(get_repo)):
    return respond(BracketEngine(repo).compute_elimination(category_id))
