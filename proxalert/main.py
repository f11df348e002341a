"""proxalert FastAPI application."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.orm import Session, sessionmaker

from proxalert import models  # noqa: F401 - register tables for create_all
from proxalert.api import contacts, health, location, sos, users, ws
from proxalert.core.config import settings
from proxalert.core.ws_manager import ws_channel
from proxalert.db.base import Base
from proxalert.db.session import SessionLocal, engine as db_engine
from proxalert.services.engine import ProximityEngine
from proxalert.services.memory_stores import InMemoryPairStateStore
from proxalert.services.sql_stores import (
    SqlAlertStore,
    SqlContactDirectory,
    SqlHistoryStore,
    SqlLocationStore,
    SqlPairStateStore,
)

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logger = logging.getLogger(__name__)


def build_engine(session_factory: sessionmaker[Session] = SessionLocal) -> ProximityEngine:
    """Wire the engine to the database and the WebSocket push channel."""
    if settings.pair_state_backend == "sql":
        pair_states = SqlPairStateStore(session_factory)
    else:
        pair_states = InMemoryPairStateStore()
    return ProximityEngine(
        settings,
        directory=SqlContactDirectory(session_factory),
        locations=SqlLocationStore(session_factory),
        history=SqlHistoryStore(session_factory),
        alerts=SqlAlertStore(session_factory),
        pair_states=pair_states,
        channel=ws_channel,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=db_engine)
    app.state.engine = build_engine()
    logger.info("Engine started (pair state: %s)", settings.pair_state_backend)
    try:
        yield
    finally:
        app.state.engine.close()


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(users.router)
app.include_router(contacts.router)
app.include_router(location.router)
app.include_router(sos.router)
app.include_router(ws.router)
