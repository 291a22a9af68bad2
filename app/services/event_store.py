"""
Event store: persistence boundary for events and their activation flag.

``EventStore`` is implemented by ``SqlEventStore`` (SQLAlchemy, default)
and ``FirestoreEventStore`` (Firebase). Backend failures surface as
``StoreError`` and missing events as ``NotFoundError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models import Event
from app.schemas.event import EventRecord
from app.services.firebase_client import get_firestore_client, use_firestore
from app.services.repositories import firestore_errors, sql_errors
from app.utils.clock import utcnow

EVENT_FIELDS = ("name", "start_time", "end_time", "is_active")

# Firestore rejects batches with more writes than this
FIRESTORE_BATCH_LIMIT = 500


def _check_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(patch) - set(EVENT_FIELDS)
    if unknown:
        raise ValueError(f"Unsupported event fields: {', '.join(sorted(unknown))}")
    return patch


class EventStore(ABC):
    """Operations the event lifecycle needs from storage"""

    @abstractmethod
    def list_events(self) -> List[EventRecord]:
        """All events, most recent start time first"""

    @abstractmethod
    def get_event(self, event_id: str) -> EventRecord:
        ...

    @abstractmethod
    def update_event(self, event_id: str, patch: Dict[str, Any]) -> EventRecord:
        ...

    @abstractmethod
    def update_many_except(self, excluded_id: Optional[str], patch: Dict[str, Any]) -> int:
        """Apply ``patch`` to every event but ``excluded_id`` (None means all).

        Returns the number of events that actually changed.
        """

    @abstractmethod
    def insert_event(self, fields: Dict[str, Any]) -> EventRecord:
        ...

    @abstractmethod
    def delete_event(self, event_id: str) -> None:
        ...

    def get_active_event(self) -> Optional[EventRecord]:
        return next((event for event in self.list_events() if event.is_active), None)

    def activate_exclusive(self, event_id: str, patch: Optional[Dict[str, Any]] = None) -> EventRecord:
        """Deactivate every other event, then mark ``event_id`` active.

        Backends override this so both writes land atomically.
        """
        self.update_many_except(event_id, {"is_active": False})
        return self.update_event(event_id, {**(patch or {}), "is_active": True})

    def insert_exclusive(self, fields: Dict[str, Any]) -> EventRecord:
        """Deactivate every event, then insert ``fields`` as the active event."""
        self.update_many_except(None, {"is_active": False})
        return self.insert_event({**fields, "is_active": True})


# -------- SQLAlchemy --------

class SqlEventStore(EventStore):
    def __init__(self, db: Session):
        self.db = db

    def _get(self, event_id: str) -> Event:
        event = self.db.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event", event_id)
        return event

    def _others(self, excluded_id: Optional[str], patch: Dict[str, Any]):
        query = self.db.query(Event).filter(
            or_(*(getattr(Event, field) != value for field, value in patch.items()))
        )
        if excluded_id is not None:
            query = query.filter(Event.id != excluded_id)
        return query

    def list_events(self) -> List[EventRecord]:
        with sql_errors(self.db, "list events"):
            events = self.db.query(Event).order_by(Event.start_time.desc(), Event.id).all()
        return [EventRecord.model_validate(event) for event in events]

    def get_event(self, event_id: str) -> EventRecord:
        with sql_errors(self.db, "load event"):
            event = self._get(event_id)
        return EventRecord.model_validate(event)

    def get_active_event(self) -> Optional[EventRecord]:
        with sql_errors(self.db, "load active event"):
            event = (
                self.db.query(Event)
                .filter(Event.is_active.is_(True))
                .order_by(Event.start_time.desc())
                .first()
            )
        return EventRecord.model_validate(event) if event else None

    def update_event(self, event_id: str, patch: Dict[str, Any]) -> EventRecord:
        patch = _check_patch(patch)
        with sql_errors(self.db, "update event"):
            event = self._get(event_id)
            for field, value in patch.items():
                setattr(event, field, value)
            self.db.commit()
            self.db.refresh(event)
        return EventRecord.model_validate(event)

    def update_many_except(self, excluded_id: Optional[str], patch: Dict[str, Any]) -> int:
        patch = _check_patch(patch)
        if not patch:
            return 0
        with sql_errors(self.db, "update events"):
            changed = self._others(excluded_id, patch).update(patch, synchronize_session=False)
            self.db.commit()
        return changed

    def insert_event(self, fields: Dict[str, Any]) -> EventRecord:
        fields = _check_patch(fields)
        with sql_errors(self.db, "create event"):
            event = Event(**fields)
            self.db.add(event)
            self.db.commit()
            self.db.refresh(event)
        return EventRecord.model_validate(event)

    def delete_event(self, event_id: str) -> None:
        with sql_errors(self.db, "delete event"):
            self.db.delete(self._get(event_id))
            self.db.commit()

    def activate_exclusive(self, event_id: str, patch: Optional[Dict[str, Any]] = None) -> EventRecord:
        patch = _check_patch({**(patch or {}), "is_active": True})
        with sql_errors(self.db, "activate event"):
            event = self._get(event_id)
            self._others(event_id, {"is_active": False}).update(
                {"is_active": False}, synchronize_session=False
            )
            for field, value in patch.items():
                setattr(event, field, value)
            self.db.commit()
            self.db.refresh(event)
        return EventRecord.model_validate(event)

    def insert_exclusive(self, fields: Dict[str, Any]) -> EventRecord:
        fields = _check_patch({**fields, "is_active": True})
        with sql_errors(self.db, "create event"):
            self._others(None, {"is_active": False}).update(
                {"is_active": False}, synchronize_session=False
            )
            event = Event(**fields)
            self.db.add(event)
            self.db.commit()
            self.db.refresh(event)
        return EventRecord.model_validate(event)


# -------- Firestore --------
# Shape: collection "events/{id}" with name, start_time, end_time, is_active, created_at

class FirestoreEventStore(EventStore):
    collection_name = "events"

    def __init__(self, client):
        self.client = client

    @property
    def _events(self):
        return self.client.collection(self.collection_name)

    @staticmethod
    def _record(doc) -> EventRecord:
        data = doc.to_dict() or {}
        data["id"] = doc.id
        return EventRecord(**data)

    def _commit_updates(self, refs: List[Any], patch: Dict[str, Any]) -> None:
        for start in range(0, len(refs), FIRESTORE_BATCH_LIMIT):
            batch = self.client.batch()
            for ref in refs[start:start + FIRESTORE_BATCH_LIMIT]:
                batch.update(ref, patch)
            batch.commit()

    def _active_refs_except(self, excluded_id: Optional[str]) -> List[Any]:
        docs = self._events.where("is_active", "==", True).stream()
        return [doc.reference for doc in docs if doc.id != excluded_id]

    def list_events(self) -> List[EventRecord]:
        with firestore_errors("list events"):
            docs = self._events.order_by("start_time", direction="DESCENDING").stream()
            return [self._record(doc) for doc in docs]

    def get_event(self, event_id: str) -> EventRecord:
        with firestore_errors("load event", "Event", event_id):
            doc = self._events.document(event_id).get()
        if not doc.exists:
            raise NotFoundError("Event", event_id)
        return self._record(doc)

    def update_event(self, event_id: str, patch: Dict[str, Any]) -> EventRecord:
        patch = _check_patch(patch)
        with firestore_errors("update event", "Event", event_id):
            self._events.document(event_id).update(patch)
        return self.get_event(event_id)

    def update_many_except(self, excluded_id: Optional[str], patch: Dict[str, Any]) -> int:
        patch = _check_patch(patch)
        with firestore_errors("update events"):
            refs = []
            for doc in self._events.stream():
                if doc.id == excluded_id:
                    continue
                data = doc.to_dict() or {}
                if any(data.get(field) != value for field, value in patch.items()):
                    refs.append(doc.reference)
            self._commit_updates(refs, patch)
        return len(refs)

    def insert_event(self, fields: Dict[str, Any]) -> EventRecord:
        data = {"is_active": False, **_check_patch(fields), "created_at": utcnow()}
        with firestore_errors("create event"):
            ref = self._events.document()
            ref.set(data)
        return EventRecord(id=ref.id, **data)

    def delete_event(self, event_id: str) -> None:
        ref = self._events.document(event_id)
        with firestore_errors("delete event", "Event", event_id):
            if not ref.get().exists:
                raise NotFoundError("Event", event_id)
            ref.delete()

    def activate_exclusive(self, event_id: str, patch: Optional[Dict[str, Any]] = None) -> EventRecord:
        patch = _check_patch({**(patch or {}), "is_active": True})
        target = self._events.document(event_id)
        with firestore_errors("activate event", "Event", event_id):
            if not target.get().exists:
                raise NotFoundError("Event", event_id)
            # One batch commits atomically: nobody sees two active events
            batch = self.client.batch()
            for ref in self._active_refs_except(event_id):
                batch.update(ref, {"is_active": False})
            batch.update(target, patch)
            batch.commit()
        return self.get_event(event_id)

    def insert_exclusive(self, fields: Dict[str, Any]) -> EventRecord:
        data = {**_check_patch(fields), "is_active": True, "created_at": utcnow()}
        with firestore_errors("create event"):
            ref = self._events.document()
            batch = self.client.batch()
            for other in self._active_refs_except(None):
                batch.update(other, {"is_active": False})
            batch.set(ref, data)
            batch.commit()
        return EventRecord(id=ref.id, **data)


def build_event_store(db: Session) -> EventStore:
    """Event store for the configured backend"""
    if use_firestore():
        return FirestoreEventStore(get_firestore_client())
    return SqlEventStore(db)
