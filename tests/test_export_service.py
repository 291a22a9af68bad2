"""
Tests for spreadsheet exports
"""

import io
from datetime import datetime, timezone
from decimal import Decimal

import pandas as pd

from app.schemas.order import OrderItemRecord, OrderRecord, OrderStatus, TableFinances
from app.services.export_service import ExportService

CREATED = datetime(2025, 6, 14, 21, 30, tzinfo=timezone.utc)

def item(name, quantity, discounted):
    return OrderItemRecord(
        product_id=None,
        product_name=name,
        quantity=quantity,
        price_at_order=Decimal(discounted) + 1,
        discounted_price_at_order=Decimal(discounted),
    )

def order(order_id, table_number, status, *items):
    return OrderRecord(
        id=order_id,
        table_id=f"table-{table_number}",
        table_number=table_number,
        event_id="gala",
        status=status,
        created_at=CREATED,
        updated_at=CREATED,
        items=list(items),
    )

def read_sheets(content):
    return pd.read_excel(io.BytesIO(content), sheet_name=None, engine='openpyxl')

def test_history_export_has_one_row_per_line():
    orders = [
        order("o1", 1, OrderStatus.ACCEPTED, item("Wine", 2, "2.50"), item("Cheese board", 1, "4.00")),
        order("o2", 2, OrderStatus.REJECTED, item("Water", 3, "1.50")),
    ]

    sheets = read_sheets(ExportService.export_history(orders))

    df = sheets['History']
    assert list(df.columns) == ExportService.HISTORY_COLUMNS
    assert len(df) == 3
    assert list(df['Status']) == ['accepted', 'accepted', 'rejected']
    assert df['Line Total'].tolist() == [5.0, 4.0, 4.5]
    assert df['Created At'].iloc[0] == pd.Timestamp(2025, 6, 14, 21, 30)

def test_history_export_without_orders():
    df = read_sheets(ExportService.export_history([]))['History']

    assert df.empty
    assert list(df.columns) == ExportService.HISTORY_COLUMNS

def test_finances_export_totals_sheet():
    tables = [
        TableFinances(
            table_id="table-1",
            table_number=1,
            items=[item("Wine", 2, "2.50"), item("Cheese board", 1, "4.00")],
            total=Decimal("9.00"),
        ),
        TableFinances(
            table_id="table-2",
            table_number=2,
            items=[item("Water", 3, "1.50")],
            total=Decimal("4.50"),
        ),
    ]

    sheets = read_sheets(ExportService.export_finances(tables))

    assert set(sheets) == {'Detail', 'Totals'}
    assert len(sheets['Detail']) == 3
    totals = sheets['Totals']
    assert totals['Table'].astype(str).tolist() == ['1', '2', 'All tables']
    assert totals['Total'].tolist() == [9.0, 4.5, 13.5]
