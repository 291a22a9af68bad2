"""
Spreadsheet exports of order history and event finances
"""

import io
from typing import Dict, List

import pandas as pd

from app.schemas.order import OrderRecord, TableFinances

class ExportService:
    """Service for rendering backoffice reports as Excel workbooks"""

    HISTORY_COLUMNS = ['Order', 'Created At', 'Table', 'Status', 'Product', 'Quantity', 'Unit Price', 'Line Total']
    FINANCES_COLUMNS = ['Table', 'Product', 'Quantity', 'Unit Price', 'Line Total']

    @staticmethod
    def _to_bytes(sheets: Dict[str, pd.DataFrame]) -> bytes:
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            for sheet_name, df in sheets.items():
                df.to_excel(writer, index=False, sheet_name=sheet_name)
        return buffer.getvalue()

    @staticmethod
    def history_rows(orders: List[OrderRecord]) -> List[dict]:
        """One row per order line"""
        rows = []
        for order in orders:
            for item in order.items:
                rows.append({
                    'Order': order.id,
                    # Excel cannot hold timezone-aware datetimes
                    'Created At': order.created_at.replace(tzinfo=None),
                    'Table': order.table_number,
                    'Status': order.status.value,
                    'Product': item.product_name,
                    'Quantity': item.quantity,
                    'Unit Price': float(item.discounted_price_at_order),
                    'Line Total': float(item.line_total),
                })
        return rows

    @staticmethod
    def export_history(orders: List[OrderRecord]) -> bytes:
        df = pd.DataFrame(ExportService.history_rows(orders), columns=ExportService.HISTORY_COLUMNS)
        return ExportService._to_bytes({'History': df})

    @staticmethod
    def export_finances(tables: List[TableFinances]) -> bytes:
        """Per-line detail sheet plus a per-table totals sheet"""
        lines = []
        for table in tables:
            for item in table.items:
                lines.append({
                    'Table': table.table_number,
                    'Product': item.product_name,
                    'Quantity': item.quantity,
                    'Unit Price': float(item.discounted_price_at_order),
                    'Line Total': float(item.line_total),
                })
        detail = pd.DataFrame(lines, columns=ExportService.FINANCES_COLUMNS)

        totals = pd.DataFrame(
            [{'Table': t.table_number, 'Total': float(t.total)} for t in tables],
            columns=['Table', 'Total'],
        )
        if not totals.empty:
            totals.loc[len(totals)] = ['All tables', totals['Total'].sum()]

        return ExportService._to_bytes({'Detail': detail, 'Totals': totals})
