# config.py - Settings, async database engine and session management
import os
import logging
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Check if we're in production (Vercel sets this automatically)
IS_PRODUCTION = os.getenv("VERCEL") is not None or os.getenv("VERCEL_ENV") is not None

if IS_PRODUCTION:
    # Production: Use environment variables
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL environment variable is required in production")

    SECRET_KEY = os.getenv("SECRET_KEY")
    if not SECRET_KEY:
        raise ValueError("SECRET_KEY environment variable is required in production")

    logger.info("Running in PRODUCTION mode")
else:
    # Local: file based SQLite unless overridden
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./homeservices.db")
    SECRET_KEY = os.getenv("SECRET_KEY", "double_dog123")

    logger.info("Running in LOCAL development mode")

# Handle different PostgreSQL URL formats
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql+asyncpg://", 1)
elif DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)

# JWT settings for privileged (admin) operations
ALGORITHM = "HS256"

# Ledger settings
COMMISSION_RATE = float(os.getenv("COMMISSION_RATE", "0.20"))
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "INR")
DEFAULT_PAYMENT_METHOD = os.getenv("DEFAULT_PAYMENT_METHOD", "cash")

# Fallback slot set when the catalog defines none or is unreachable
DEFAULT_TIME_SLOTS = [
    "9:00 AM - 11:00 AM",
    "11:00 AM - 1:00 PM",
    "1:00 PM - 3:00 PM",
    "3:00 PM - 5:00 PM",
    "5:00 PM - 7:00 PM",
]

# Starting points for id sequences (first allocated id is start + 1)
SEQUENCE_STARTS = {
    "booking": 0,
    "payment": 1000,
    "upcoming_payment": 2000,
    "service_note": 5000,
    "activity": 0,
}

# Reference data rate limiting (in-memory, per process)
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", str(15 * 60)))
RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100"))

SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", "30"))

Base = declarative_base()


def build_engine(url: str):
    """Create the async engine; SQLite transactions are serialized with BEGIN IMMEDIATE"""
    if url.startswith("sqlite"):
        engine = create_async_engine(
            url,
            connect_args={"timeout": SQLITE_BUSY_TIMEOUT},
            echo=False
        )

        @event.listens_for(engine.sync_engine, "connect")
        def _disable_driver_begin(dbapi_connection, connection_record):
            # the driver's implicit BEGIN would defer locking until the first write
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "connect")
        def _enable_sqlite_fk(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    return create_async_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=300,  # Recycle connections every 5 minutes
        echo=False  # Set to True for SQL debugging
    )


engine = build_engine(DATABASE_URL)
SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    async with SessionLocal() as db:
        yield db
