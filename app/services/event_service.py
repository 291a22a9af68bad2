"""
Event lifecycle: activation reconciliation, create/edit/end/cancel and the
current/future/past classification used by the backoffice.

At most one event is active, and the active one is the event whose
start/end window contains the current instant. The flag is cached in the
store and brought back in line by ``EventReconciler`` on every pass.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from app.core.exceptions import EventWindowError, NotFoundError, StoreError
from app.schemas.event import EventCreate, EventOverview, EventRecord, EventUpdate
from app.services.event_store import EventStore
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def window_contains(event: EventRecord, now: datetime) -> bool:
    return event.start_time <= now <= event.end_time


def starts_active(start_time: datetime, end_time: datetime, now: datetime) -> bool:
    """Whether a window being saved right now should be the active event"""
    return start_time <= now < end_time


def validate_window(start_time: datetime, end_time: datetime) -> None:
    if end_time <= start_time:
        raise EventWindowError(
            "End time must be after start time",
            details={"start_time": start_time.isoformat(), "end_time": end_time.isoformat()},
        )


def select_active_candidate(events: Sequence[EventRecord], now: datetime) -> Optional[EventRecord]:
    """Pick the one event that should be active at ``now``.

    Windows are not supposed to overlap. When they do, an event that is
    already active keeps the flag; otherwise the latest start wins, ties
    broken by id, so repeated passes always agree.
    """
    in_window = [event for event in events if window_contains(event, now)]
    if not in_window:
        return None
    return max(in_window, key=lambda event: (event.is_active, event.start_time, event.id))


def classify_events(events: Sequence[EventRecord], now: datetime) -> EventOverview:
    return EventOverview(
        current=[e for e in events if window_contains(e, now) and e.is_active],
        future=[e for e in events if e.start_time > now],
        past=[e for e in events if e.end_time < now and not e.is_active],
    )


class EventReconciler:
    """Restores the single-active-event invariant from the store's current state"""

    def __init__(self, store: EventStore):
        self.store = store

    def reconcile(self, now: datetime, events: Optional[Sequence[EventRecord]] = None) -> List[EventRecord]:
        """Apply the minimal set of flag changes for ``now``.

        Returns the events with the changes that were written. A failed write
        is logged and left for the next pass; it never stops the others.
        """
        if events is None:
            events = self.store.list_events()
        result = [event.model_copy() for event in events]
        target = select_active_candidate(result, now)

        if target is not None and not target.is_active:
            try:
                activated = self.store.activate_exclusive(target.id)
            except (StoreError, NotFoundError) as exc:
                logger.warning(f"Could not activate event {target.id}: {exc}")
            else:
                logger.info(f"Event '{activated.name}' ({activated.id}) is now active")
                for index, event in enumerate(result):
                    if event.id == activated.id:
                        result[index] = activated
                    else:
                        event.is_active = False

        for index, event in enumerate(result):
            if not event.is_active or (target is not None and event.id == target.id):
                continue
            try:
                result[index] = self.store.update_event(event.id, {"is_active": False})
            except (StoreError, NotFoundError) as exc:
                logger.warning(f"Could not deactivate event {event.id}: {exc}")
            else:
                logger.info(f"Event '{event.name}' ({event.id}) is no longer active")

        return result


class EventService:
    """Backoffice event operations"""

    def __init__(self, store: EventStore, clock: Clock = utcnow):
        self.store = store
        self.clock = clock
        self.reconciler = EventReconciler(store)

    def reconcile(self) -> List[EventRecord]:
        return self.reconciler.reconcile(self.clock())

    def overview(self) -> EventOverview:
        """Reconcile, then split events into current, future and past"""
        now = self.clock()
        events = self.reconciler.reconcile(now)
        return classify_events(events, now)

    def list_events(self) -> List[EventRecord]:
        return self.store.list_events()

    def get_event(self, event_id: str) -> EventRecord:
        return self.store.get_event(event_id)

    def get_active_event(self) -> Optional[EventRecord]:
        return self.store.get_active_event()

    def create_event(self, data: EventCreate) -> EventRecord:
        validate_window(data.start_time, data.end_time)
        fields = {"name": data.name, "start_time": data.start_time, "end_time": data.end_time}

        if starts_active(data.start_time, data.end_time, self.clock()):
            event = self.store.insert_exclusive(fields)
            logger.info(f"Created event '{event.name}' ({event.id}) as the active event")
        else:
            event = self.store.insert_event({**fields, "is_active": False})
            logger.info(f"Created event '{event.name}' ({event.id}) starting {event.start_time.isoformat()}")
        return event

    def update_event(self, event_id: str, data: EventUpdate) -> EventRecord:
        validate_window(data.start_time, data.end_time)
        patch = {"name": data.name, "start_time": data.start_time, "end_time": data.end_time}

        if starts_active(data.start_time, data.end_time, self.clock()):
            event = self.store.activate_exclusive(event_id, patch)
        else:
            event = self.store.update_event(event_id, {**patch, "is_active": False})
        logger.info(f"Updated event '{event.name}' ({event.id}), active={event.is_active}")
        return event

    def end_event(self, event_id: str) -> EventRecord:
        """Finish an event in progress now, whatever its configured end time was"""
        now = self.clock()
        event = self.store.get_event(event_id)
        # end_time = now must stay after start_time and must not extend a finished window
        if not event.start_time < now <= event.end_time:
            raise EventWindowError(
                "Only an event in progress can be ended",
                details={
                    "start_time": event.start_time.isoformat(),
                    "end_time": event.end_time.isoformat(),
                    "now": now.isoformat(),
                },
            )
        event = self.store.update_event(event_id, {"end_time": now, "is_active": False})
        logger.info(f"Ended event '{event.name}' ({event.id}) at {event.end_time.isoformat()}")
        return event

    def cancel_event(self, event_id: str) -> None:
        # No replacement is activated; the next pass picks up any due window
        self.store.delete_event(event_id)
        logger.info(f"Cancelled event {event_id}")

