# backend/gaterace/api/routes/pages.py

from fastapi import APIRouter, Request, Depends
from fastapi.templating import Jinja2Templates
from sqlalchemy import select
from sqlalchemy.orm import Session

from ...core.config import get_settings
from ...db import get_db
from ...models import Event

router = APIRouter()

templates = Jinja2Templates(directory=get_settings().TEMPLATE_DIR)


@router.get("/", include_in_schema=False, name="index")
async def index(
    request: Request,
    db: Session = Depends(get_db),
):
    # последние события с категориями -> ссылки на табло
    stmt = select(Event).order_by(Event.date.desc()).limit(10)
    events = db.scalars(stmt).all()

    return templates.TemplateResponse(
        request,
        "index.html",
        {"events": events},
    )
