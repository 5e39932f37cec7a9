# api/index.py - Serverless entry point with CORS, root and health endpoints

from fastapi.middleware.cors import CORSMiddleware
import sys
import os

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import IS_PRODUCTION
from main import create_app

API_VERSION = "1.0.0"

app = create_app()

# Add CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify your frontend domains
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
def read_root():
    """
    Welcome endpoint that provides basic API information
    """
    return {
        "message": "Home Services Booking API",
        "version": API_VERSION,
        "status": "running",
        "production": IS_PRODUCTION,
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_schema": "/openapi.json"
        },
        "features": [
            "Slot availability with default-slot fallback",
            "Conflict-free booking reservations",
            "Booking and service lifecycle tracking",
            "Technician schedules, notes and activity feed",
            "Earnings ledger with dashboard and CSV export",
            "Location and service catalog reference data"
        ]
    }


@app.get("/health", tags=["Health"])
def health():
    """
    Health check endpoint
    """
    return {
        "status": "healthy",
        "production": IS_PRODUCTION,
        "version": API_VERSION
    }
