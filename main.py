"""
Venue Backoffice - FastAPI Backend
Main application entry point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from app.core.config import settings
from app.core.db import engine, Base
from app.core.exceptions import BackofficeError
from app.api import routes_admin, routes_public, routes_table, ws
from app.services.firebase_client import use_firestore
from app.services.notification_service import notification_service
from app.services.scheduler import start_scheduler
from app.utils.responses import error_response

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    if not use_firestore():
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created")

    scheduler = None
    if settings.ENABLE_SCHEDULER:
        scheduler = start_scheduler(notification_service)
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)
        logger.info("Reconciliation scheduler stopped")
    logger.info("Application shutdown")

# Create FastAPI application
app = FastAPI(
    title="Venue Backoffice",
    description="Stock, events and table-side order management for event venues",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(BackofficeError)
async def backoffice_error_handler(request: Request, exc: BackofficeError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_response(exc)

# Include routers
app.include_router(routes_public.router, tags=["public"])
app.include_router(routes_table.router, prefix="/tables", tags=["tables"])
app.include_router(routes_admin.router, prefix="/backoffice", tags=["backoffice"])
app.include_router(ws.router, prefix="/ws", tags=["websocket"])

@app.get("/")
async def root():
    """Backoffice sections"""
    return {
        "name": "Venue Backoffice",
        "sections": {
            "stock": "/backoffice/stock",
            "requests": "/backoffice/requests",
            "history": "/backoffice/history",
            "finances": "/backoffice/finances",
            "events": "/backoffice/events",
        }
    }

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
