"""
Pet Store POS - Backend API
Offline point of sale: catalog, sales ledger, receipts and backups
"""
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from petpos.api import backup, categories, orders, products
from petpos.api.dependencies import build_context
from petpos.core.config import settings
from petpos.core.database import open_store_with_retry
from petpos.core.exceptions import (
    CheckoutError,
    ConstraintViolation,
    ParseFailure,
    StorageUnavailable,
    describe_error,
)
from petpos.core.record_store import PRODUCTS, RecordStore

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _error_response(status_code: int, error: Exception, code: Optional[str] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "error",
            "code": code or error.code,
            "detail": describe_error(error),
        },
    )


def create_app(store: Optional[RecordStore] = None) -> FastAPI:
    """
    Build the API application

    Args:
        store: An already open store to serve (tests). When omitted the
            store at settings.DATABASE_PATH is opened on startup and closed
            on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if store is None:
            owned = open_store_with_retry()
            app.state.store = owned
            app.state.pos = build_context(owned)
            logger.info(f"Datastore open at {settings.DATABASE_PATH}")
        try:
            yield
        finally:
            if owned is not None:
                owned.close()
                logger.info("Datastore closed")

    app = FastAPI(
        title=settings.API_TITLE,
        version=settings.API_VERSION,
        description=settings.API_DESCRIPTION,
        lifespan=lifespan,
    )

    if store is not None:
        app.state.store = store
        app.state.pos = build_context(store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Domain errors -> HTTP status
    @app.exception_handler(StorageUnavailable)
    async def storage_unavailable_handler(request: Request, exc: StorageUnavailable):
        logger.error(f"Datastore unavailable: {exc.message}")
        return _error_response(503, exc)

    @app.exception_handler(ConstraintViolation)
    async def constraint_violation_handler(request: Request, exc: ConstraintViolation):
        return _error_response(409, exc)

    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError):
        return _error_response(400, exc)

    @app.exception_handler(ParseFailure)
    async def parse_failure_handler(request: Request, exc: ParseFailure):
        return _error_response(400, exc)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return _error_response(422, exc, code="validation_error")

    # Include API routers
    app.include_router(products.router, prefix="/api/v1/products", tags=["Products"])
    app.include_router(categories.router, prefix="/api/v1/categories", tags=["Categories"])
    app.include_router(orders.router, prefix="/api/v1/orders", tags=["Orders"])
    app.include_router(backup.router, prefix="/api/v1/backup", tags=["Backup"])

    @app.get("/")
    def root():
        return {
            "message": settings.API_TITLE,
            "status": "online",
            "version": settings.API_VERSION,
        }

    @app.get("/health")
    def health():
        """Health check - tests that the datastore answers"""
        start_time = time.time()

        db_status = "unknown"
        db_error = None

        current = getattr(app.state, "store", None)
        try:
            if current is None:
                raise StorageUnavailable("Datastore is not open")
            current.count(PRODUCTS)
            db_status = "connected"
        except StorageUnavailable as e:
            db_status = "disconnected"
            db_error = e.message

        return {
            "status": "healthy" if db_status == "connected" else "degraded",
            "service": "petpos-api",
            "version": settings.API_VERSION,
            "database": {
                "status": db_status,
                "error": db_error,
            },
            "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        }

    return app


app = create_app()
