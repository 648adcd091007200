"""
Общие фикстуры: SQLite в памяти на каждый тест, фабрики события/категории/
гонщиков и TestClient с подменённой сессией.
"""

import datetime
import os
import random

# до импорта приложения: движок по умолчанию тоже в памяти
os.environ.setdefault("GATERACE_DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gaterace import models  # noqa: F401
from gaterace.db import Base, get_db
from gaterace.domain.enums import FinalClass, Gender, ResultStatus
from gaterace.domain.scoring import HeatEntry
from gaterace.domain.stages import StageTier
from gaterace.models import Category, Event, Rider
from gaterace.services.repository import RaceRepository

ALL_FINAL_CLASSES = tuple(fc.value for fc in FinalClass)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def repo(db) -> RaceRepository:
    return RaceRepository(db)


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def event(db) -> Event:
    event = Event(name="Spring Cup", date=datetime.date(2025, 4, 12), location="Jakarta")
    db.add(event)
    db.commit()
    return event


@pytest.fixture
def make_category(db, event):
    def _make(label="Boys 2015", year_min=2015, year_max=2015, gender=Gender.MIX, **kwargs) -> Category:
        category = Category(
            event_id=event.id,
            label=label,
            year_min=year_min,
            year_max=year_max,
            gender=gender,
            **kwargs,
        )
        db.add(category)
        db.commit()
        return category

    return _make


@pytest.fixture
def make_riders(db, event):
    def _make(count, birth_year=2015, gender=Gender.BOY, start_plate=1) -> list:
        riders = [
            Rider(
                event_id=event.id,
                name=f"Rider {start_plate + i}",
                plate_number=start_plate + i,
                birth_year=birth_year,
                gender=gender,
            )
            for i in range(count)
        ]
        db.add_all(riders)
        db.commit()
        return [r.id for r in riders]

    return _make


@pytest.fixture
def set_rules(repo):
    def _set(category_id, *tiers: StageTier):
        repo.replace_stage_rules(category_id, tiers)
        repo.commit()

    return _set


@pytest.fixture
def full_bracket_rules():
    """Все стадии и все финалы с 4 гонщиков."""
    return StageTier(
        min_riders=4,
        enable_qualification=True,
        enable_quarter_final=True,
        enable_semi_final=True,
        final_classes=ALL_FINAL_CLASSES,
    )


def finish_in_order(rider_ids):
    """Результаты заезда: гонщики финишируют в переданном порядке."""
    return [
        HeatEntry(rider_id=rid, status=ResultStatus.FINISH, finish_order=pos)
        for pos, rid in enumerate(rider_ids, start=1)
    ]


@pytest.fixture
def client(engine):
    from gaterace.main import app

    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = Session()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
