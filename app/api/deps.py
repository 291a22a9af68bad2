"""
FastAPI dependencies wiring services to the configured storage backend
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.services.event_service import EventService
from app.services.event_store import EventStore, build_event_store
from app.services.order_service import OrderService
from app.services.repositories import (
    ProductRepo,
    TableRepo,
    build_order_repo,
    build_product_repo,
    build_table_repo,
)


def get_event_store(db: Session = Depends(get_db)) -> EventStore:
    return build_event_store(db)


def get_event_service(store: EventStore = Depends(get_event_store)) -> EventService:
    return EventService(store)


def get_product_repo(db: Session = Depends(get_db)) -> ProductRepo:
    return build_product_repo(db)


def get_table_repo(db: Session = Depends(get_db)) -> TableRepo:
    return build_table_repo(db)


def get_order_service(
    db: Session = Depends(get_db),
    store: EventStore = Depends(get_event_store),
) -> OrderService:
    return OrderService(
        orders=build_order_repo(db),
        tables=build_table_repo(db),
        products=build_product_repo(db),
        events=store,
    )
