"""
Public API routes - no authentication required
"""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from app.api.deps import get_product_repo, get_table_repo
from app.services.qr_service import QRService
from app.services.repositories import ProductRepo, TableRepo
from app.utils.responses import success_response

router = APIRouter()

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok"}

@router.get("/menu")
async def get_menu(products: ProductRepo = Depends(get_product_repo)):
    """Products currently in stock"""
    return success_response(
        message="Menu retrieved",
        data=[
            {
                "id": p.id,
                "name": p.name,
                "price": p.price,
                "discounted_price": p.discounted_price,
            }
            for p in products.list_products(in_stock_only=True)
        ]
    )

@router.get("/tables/{number}/qr.png")
async def get_table_qr(
    number: int,
    tables: TableRepo = Depends(get_table_repo)
):
    """QR code linking to the table's ordering page"""
    tables.require_by_number(number)
    return Response(
        content=QRService.generate_table_qr(number),
        media_type="image/png",
        headers={"Content-Disposition": f"inline; filename=table_{number}.png"}
    )
