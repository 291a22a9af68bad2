"""
QR code generation for table-side ordering
"""

import io
import qrcode

from app.core.config import settings

class QRService:
    """Service for generating table QR codes"""

    @staticmethod
    def get_order_url(table_number: int) -> str:
        """URL a guest lands on after scanning the table's QR code"""
        return f"{settings.BASE_URL}/tables/{table_number}/order"

    @staticmethod
    def generate_table_qr(table_number: int, format: str = 'PNG') -> bytes:
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(QRService.get_order_url(table_number))
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format=format)
        return buffer.getvalue()
