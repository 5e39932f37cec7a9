# main.py - Application factory: routers, error handlers and startup table creation
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from config import Base, engine, SessionLocal, IS_PRODUCTION
import tables.bookings, tables.catalog, tables.locations, tables.employees, tables.services, tables.activities, tables.payments, tables.sequences
from repository.sequences import SequenceRepo
from routes import bookings, services, schedule, payments, upcoming_payments, employees, locations, catalog

logger = logging.getLogger(__name__)


async def init_db(bind=engine, session_factory=SessionLocal):
    """Create tables and seed id counters"""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with session_factory() as db:
        await SequenceRepo.seed(db)
    logger.info("Database and tables initialized successfully")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


def _location(error) -> str:
    parts = [str(p) for p in error.get("loc", ()) if p not in ("body", "query", "path")]
    return ".".join(parts) or "request"


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [f"{_location(e)}: {e.get('msg')}" for e in exc.errors()]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": {"error": "validation_error", "message": "Validation failed", "errors": errors}}
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    message = "Internal server error" if IS_PRODUCTION else str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": {"error": "internal_error", "message": message}}
    )


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Home Services Booking API",
        version="1.0.0",
        description="Slot booking, technician scheduling and earnings ledger for home services",
        lifespan=lifespan if use_lifespan else None
    )
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(bookings.router)
    app.include_router(services.router)
    app.include_router(schedule.router)
    app.include_router(payments.router)
    app.include_router(upcoming_payments.router)
    app.include_router(employees.router)
    app.include_router(locations.router)
    app.include_router(catalog.router)
    return app


app = create_app()
