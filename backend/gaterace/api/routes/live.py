# backend/gaterace/api/routes/live.py

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.templating import Jinja2Templates

from ...core.config import get_settings
from ...core.errors import NotFoundError
from ...services import live_score
from ...services.repository import RaceRepository
from ...utils.jinja_filters import finish_label, format_float_clean
from ..deps import get_repo

router = APIRouter(prefix="/live", tags=["live"])

templates = Jinja2Templates(directory=get_settings().TEMPLATE_DIR)
templates.env.filters["float_clean"] = format_float_clean
templates.env.filters["finish_label"] = finish_label


def _load(fn, repo: RaceRepository, category_id: int):
    try:
        return fn(repo, category_id)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail=err.message)


@router.get("/categories/{category_id}")
async def live_score_json(category_id: int, repo: RaceRepository = Depends(get_repo)):
    return _load(live_score.live_score, repo, category_id)


@router.get("/categories/{category_id}/stage-results")
async def stage_results(category_id: int, repo: RaceRepository = Depends(get_repo)):
    return _load(live_score.stage_results_view, repo, category_id)


@router.get("/categories/{category_id}/page", include_in_schema=False)
async def live_score_page(
    category_id: int,
    request: Request,
    repo: RaceRepository = Depends(get_repo),
):
    data = _load(live_score.live_score, repo, category_id)
    results = live_score.stage_results_view(repo, category_id)

    return templates.TemplateResponse(
        request,
        "live_score.html",
        {"score": data, "winners": results["winners"]},
    )
