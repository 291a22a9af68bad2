"""Periodic event activation reconciliation using APScheduler."""

import asyncio
import logging
from typing import List, Optional, Tuple

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.core.db import get_db_context
from app.core.exceptions import StoreError
from app.schemas.event import EventRecord
from app.services.event_service import EventService
from app.services.event_store import build_event_store
from app.services.notification_service import NotificationService
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

JOB_ID = "event-reconciliation"


def run_reconciliation() -> Tuple[List[EventRecord], bool]:
    """One reconciliation pass with its own session.

    Returns the reconciled events and whether any active flag changed.
    """
    with get_db_context() as db:
        service = EventService(build_event_store(db))
        before = service.list_events()
        after = service.reconciler.reconcile(service.clock(), before)
    changed = {e.id: e.is_active for e in before} != {e.id: e.is_active for e in after}
    return after, changed


async def reconciliation_job(notifier: NotificationService) -> None:
    try:
        events, changed = await asyncio.to_thread(run_reconciliation)
    except StoreError as exc:
        # The next pass starts from scratch
        logger.warning(f"Event reconciliation skipped: {exc}")
        return
    if changed:
        await notifier.events_reconciled(events)


def start_scheduler(notifier: NotificationService, interval_seconds: Optional[int] = None) -> AsyncIOScheduler:
    """Start reconciling events on a fixed interval, plus once right away"""
    interval = interval_seconds or settings.RECONCILE_INTERVAL_SECONDS
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        reconciliation_job,
        IntervalTrigger(seconds=interval),
        args=[notifier],
        id=JOB_ID,
        name="Events: activation reconciliation",
        max_instances=1,
        coalesce=True,
        next_run_time=utcnow(),
    )
    scheduler.start()
    logger.info(f"Registered job: event reconciliation (every {interval}s)")
    return scheduler
