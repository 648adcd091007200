# backend/gaterace/api/routes/jury.py

from dataclasses import asdict

from fastapi import APIRouter, Depends

from ...domain.scoring import HeatEntry
from ...services import lifecycle, penalties, results
from ...services.bracket import BracketEngine
from ...services.repository import RaceRepository
from ..deps import get_repo, respond
from ..schemas import PenaltyIn, ResultsIn, StatusIn

router = APIRouter(prefix="/jury", tags=["jury"])


# --- результаты заезда ---------------------------------------------


@router.post("/heats/{heat_id}/results")
async def submit_results(heat_id: int, payload: ResultsIn, repo: RaceRepository = Depends(get_repo)):
    entries = [
        HeatEntry(rider_id=r.rider_id, status=r.status, finish_order=r.finish_order)
        for r in payload.results
    ]
    return respond(results.submit_results(repo, heat_id, entries))


@router.delete("/heats/{heat_id}/results")
async def clear_results(heat_id: int, repo: RaceRepository = Depends(get_repo)):
    return respond(results.clear_results(repo, heat_id))


# --- статус заезда --------------------------------------------------


@router.post("/heats/{heat_id}/status")
async def change_status(heat_id: int, payload: StatusIn, repo: RaceRepository = Depends(get_repo)):
    return respond(lifecycle.change_status(repo, heat_id, payload.status))


@router.post("/heats/{heat_id}/progress")
async def progress(heat_id: int, repo: RaceRepository = Depends(get_repo)):
    return respond(lifecycle.progress(repo, heat_id))


@router.post("/heats/{heat_id}/publish")
async def publish(heat_id: int, repo: RaceRepository = Depends(get_repo)):
    return respond(lifecycle.publish(repo, heat_id))


@router.post("/heats/{heat_id}/advance")
async def advance(heat_id: int, repo: RaceRepository = Depends(get_repo)):
    """Пересчёт после заезда: квалификация или сетка + новые заезды."""
    return respond(BracketEngine(repo).advance_after_heat(heat_id))


# --- штрафы -----------------------------------------------------------


@router.get("/penalties/definitions")
async def penalty_definitions():
    return [asdict(d) for d in penalties.PENALTY_DEFINITIONS]


@router.post("/penalties")
async def add_penalty(payload: PenaltyIn, repo: RaceRepository = Depends(get_repo)):
    return respond(
        penalties.add_penalty(
            repo,
            event_id=payload.event_id,
            rider_id=payload.rider_id,
            rule_code=payload.rule_code,
            stage=payload.stage,
            penalty_point=payload.penalty_point,
            heat_id=payload.heat_id,
            note=payload.note,
        )
    )


@router.post("/penalties/{penalty_id}/approve")
async def approve_penalty(penalty_id: int, repo: RaceRepository = Depends(get_repo)):
    return respond(penalties.approve_penalty(repo, penalty_id))
