"""
Backoffice API routes - requires authentication
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from app.api.deps import get_event_service, get_order_service, get_product_repo, get_table_repo
from app.schemas.event import EventCreate, EventUpdate
from app.schemas.order import OrderRecord, OrderStatus
from app.schemas.product import ProductCreate, ProductUpdate
from app.schemas.table import TableCreate
from app.services.event_service import EventService
from app.services.export_service import ExportService
from app.services.notification_service import notification_service
from app.services.order_service import OrderService, grand_total
from app.services.repositories import ProductRepo, TableRepo
from app.utils.responses import success_response
from app.utils.security import verify_admin_token

router = APIRouter(dependencies=[Depends(verify_admin_token)])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _order_data(order: OrderRecord) -> dict:
    return {**order.model_dump(), "total": order.total}


# -------- Events --------

@router.get("/events")
async def list_events(events: EventService = Depends(get_event_service)):
    """Reconcile activation, then return current, future and past events"""
    overview = events.overview()
    return success_response(message="Events retrieved", data=overview.model_dump())

@router.get("/events/active")
async def get_active_event(events: EventService = Depends(get_event_service)):
    event = events.get_active_event()
    return success_response(
        message="Active event retrieved" if event else "No event in progress",
        data=event.model_dump() if event else None
    )

@router.post("/events/reconcile")
async def reconcile_events(events: EventService = Depends(get_event_service)):
    """Run an activation pass now"""
    reconciled = events.reconcile()
    await notification_service.events_reconciled(reconciled)
    return success_response(
        message="Events reconciled",
        data=[event.model_dump() for event in reconciled]
    )

@router.post("/events")
async def create_event(
    event_data: EventCreate,
    events: EventService = Depends(get_event_service)
):
    event = events.create_event(event_data)
    await notification_service.event_changed("created", event.id, event)
    return success_response(message="Event created successfully", data=event.model_dump(), status_code=201)

@router.put("/events/{event_id}")
async def update_event(
    event_id: str,
    event_data: EventUpdate,
    events: EventService = Depends(get_event_service)
):
    event = events.update_event(event_id, event_data)
    await notification_service.event_changed("updated", event.id, event)
    return success_response(message="Event updated successfully", data=event.model_dump())

@router.post("/events/{event_id}/end")
async def end_event(
    event_id: str,
    events: EventService = Depends(get_event_service)
):
    """Finish the event immediately"""
    event = events.end_event(event_id)
    await notification_service.event_changed("ended", event.id, event)
    return success_response(message="Event ended", data=event.model_dump())

@router.delete("/events/{event_id}")
async def cancel_event(
    event_id: str,
    events: EventService = Depends(get_event_service)
):
    """Cancel (delete) an event"""
    events.cancel_event(event_id)
    await notification_service.event_changed("cancelled", event_id)
    return success_response(message="Event cancelled", data={"deleted_event_id": event_id})


# -------- Stock --------

@router.get("/stock")
async def list_products(products: ProductRepo = Depends(get_product_repo)):
    return success_response(
        message="Products retrieved",
        data=[p.model_dump() for p in products.list_products()]
    )

@router.post("/stock")
async def create_product(
    product_data: ProductCreate,
    products: ProductRepo = Depends(get_product_repo)
):
    product = products.create_product(product_data.model_dump())
    return success_response(message="Product created successfully", data=product.model_dump(), status_code=201)

@router.patch("/stock/{product_id}")
async def update_product(
    product_id: str,
    product_update: ProductUpdate,
    products: ProductRepo = Depends(get_product_repo)
):
    product = products.update_product(product_id, product_update.model_dump(exclude_unset=True, exclude_none=True))
    return success_response(message="Product updated successfully", data=product.model_dump())

@router.delete("/stock/{product_id}")
async def delete_product(
    product_id: str,
    products: ProductRepo = Depends(get_product_repo)
):
    products.delete_product(product_id)
    return success_response(message="Product deleted successfully", data={"deleted_product_id": product_id})


# -------- Tables --------

@router.get("/tables")
async def list_tables(tables: TableRepo = Depends(get_table_repo)):
    return success_response(
        message="Tables retrieved",
        data=[t.model_dump() for t in tables.list_tables()]
    )

@router.post("/tables")
async def create_table(
    table_data: TableCreate,
    tables: TableRepo = Depends(get_table_repo)
):
    table = tables.create_table(table_data.number)
    return success_response(message="Table created successfully", data=table.model_dump(), status_code=201)


# -------- Order requests --------

@router.get("/requests")
async def list_pending_requests(orders: OrderService = Depends(get_order_service)):
    """Pending orders of the event in progress"""
    event, pending = orders.pending_requests()
    return success_response(
        message="Pending requests retrieved" if event else "No event in progress",
        data={
            "active_event": event.model_dump() if event else None,
            "orders": [_order_data(o) for o in pending]
        }
    )

async def _decide(order_id: str, status: OrderStatus, orders: OrderService):
    order = orders.decide(order_id, status)
    await notification_service.order_status_changed(order)
    return success_response(message=f"Order {status.value}", data=_order_data(order))

@router.post("/requests/{order_id}/accept")
async def accept_request(order_id: str, orders: OrderService = Depends(get_order_service)):
    return await _decide(order_id, OrderStatus.ACCEPTED, orders)

@router.post("/requests/{order_id}/reject")
async def reject_request(order_id: str, orders: OrderService = Depends(get_order_service)):
    return await _decide(order_id, OrderStatus.REJECTED, orders)


# -------- History and finances --------

@router.get("/history")
async def order_history(
    event_id: Optional[str] = Query(None),
    table_id: Optional[str] = Query(None),
    orders: OrderService = Depends(get_order_service)
):
    """Accepted and rejected orders of an event, newest first"""
    event_id = orders.resolve_event_id(event_id)
    history = orders.history(event_id, table_id) if event_id else []
    return success_response(
        message="Order history retrieved",
        data={"event_id": event_id, "orders": [_order_data(o) for o in history]}
    )

@router.get("/history/export.xlsx")
async def export_history(
    event_id: Optional[str] = Query(None),
    table_id: Optional[str] = Query(None),
    orders: OrderService = Depends(get_order_service)
):
    event_id = orders.resolve_event_id(event_id)
    history = orders.history(event_id, table_id) if event_id else []
    return Response(
        content=ExportService.export_history(history),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename=history_{event_id or 'none'}.xlsx"}
    )

@router.get("/finances")
async def event_finances(
    event_id: Optional[str] = Query(None),
    orders: OrderService = Depends(get_order_service)
):
    """Accepted consumption per table"""
    event_id = orders.resolve_event_id(event_id)
    tables = orders.finances(event_id) if event_id else []
    return success_response(
        message="Finances retrieved",
        data={
            "event_id": event_id,
            "tables": [t.model_dump() for t in tables],
            "total": grand_total(tables)
        }
    )

@router.get("/finances/export.xlsx")
async def export_finances(
    event_id: Optional[str] = Query(None),
    orders: OrderService = Depends(get_order_service)
):
    event_id = orders.resolve_event_id(event_id)
    tables = orders.finances(event_id) if event_id else []
    return Response(
        content=ExportService.export_finances(tables),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename=finances_{event_id or 'none'}.xlsx"}
    )
