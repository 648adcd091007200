# backend/gaterace/api/deps.py

from typing import Any, Dict

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from ..core.errors import Outcome
from ..db import get_db
from ..services.repository import RaceRepository


def get_repo(db: Session = Depends(get_db)) -> RaceRepository:
    return RaceRepository(db)


def respond(outcome: Outcome) -> Dict[str, Any]:
    """ok/warning -> 200 с телом, отказ -> HTTPException с кодом ошибки."""
    if outcome.status == "rejected":
        raise HTTPException(status_code=outcome.status_code, detail=outcome.message)
    return outcome.as_dict()
