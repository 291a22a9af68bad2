"""
Tests for the periodic reconciliation job
"""

import asyncio
import pytest
from contextlib import contextmanager
from datetime import timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.db import Base
from app.core.exceptions import StoreError
from app.services import scheduler
from app.services.event_store import SqlEventStore
from app.utils.clock import utcnow

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_scheduler.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

H = timedelta(hours=1)

class RecordingNotifier:
    def __init__(self):
        self.reconciled = []

    async def events_reconciled(self, events):
        self.reconciled.append(events)

@pytest.fixture
def db_session(monkeypatch):
    """Point the job's session factory at the test database"""
    Base.metadata.create_all(bind=engine)

    @contextmanager
    def test_db_context():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    monkeypatch.setattr(scheduler, "get_db_context", test_db_context)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)

def seed(db, name, start, end, active=False):
    now = utcnow()
    return SqlEventStore(db).insert_event({
        "name": name,
        "start_time": now + start,
        "end_time": now + end,
        "is_active": active,
    })

def test_job_broadcasts_when_flags_change(db_session):
    due = seed(db_session, "Gala", -H, 2 * H)
    seed(db_session, "Lunch", -5 * H, -4 * H, active=True)
    notifier = RecordingNotifier()

    asyncio.run(scheduler.reconciliation_job(notifier))

    assert len(notifier.reconciled) == 1
    assert [e.id for e in notifier.reconciled[0] if e.is_active] == [due.id]

def test_job_stays_quiet_when_nothing_changes(db_session):
    seed(db_session, "Gala", -H, 2 * H, active=True)
    notifier = RecordingNotifier()

    asyncio.run(scheduler.reconciliation_job(notifier))

    assert notifier.reconciled == []

def test_job_survives_store_outage(monkeypatch):
    def unavailable():
        raise StoreError("database is down")

    monkeypatch.setattr(scheduler, "run_reconciliation", unavailable)
    notifier = RecordingNotifier()

    asyncio.run(scheduler.reconciliation_job(notifier))

    assert notifier.reconciled == []
