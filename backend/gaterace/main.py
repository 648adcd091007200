# backend/gaterace/main.py

import logging

from fastapi import FastAPI

from .api.routes import admin, jury, live, pages
from .core.config import get_settings
from .db import Base, engine

from . import models  # noqa: F401  # важно, чтобы модели подхватились

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title=settings.PROJECT_NAME)

Base.metadata.create_all(bind=engine)

app.include_router(pages.router)
app.include_router(admin.router)
app.include_router(jury.router)
app.include_router(live.router)
