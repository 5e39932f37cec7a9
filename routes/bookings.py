# routes/bookings.py - Slot availability, reservations and the booking lifecycle
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models.bookings import (
    BookingCreate, BookingRead, AvailabilityResponse, UpdateBookingStatusRequest, ReviewRequest
)
from repository.bookings import BookingRepo
from repository.reference import ReferenceStore, get_reference_store
from repository.slots import SlotAllocator
from utils.auth import require_admin
from typing import Optional, List

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.get("/available-slots", response_model=AvailabilityResponse)
async def available_slots(
    date: Optional[str] = Query(None),
    service_id: Optional[int] = Query(None, alias="serviceId"),
    city: Optional[str] = Query(None),
    area: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    reference: ReferenceStore = Depends(get_reference_store)
):
    """Free slots for a date and location; falls back to the default slot set when storage is down"""
    return await SlotAllocator.query_availability(db, reference, date, city, area, service_id)


@router.post("", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def create_booking(
    req: BookingCreate,
    db: AsyncSession = Depends(get_db),
    reference: ReferenceStore = Depends(get_reference_store)
):
    booking = await SlotAllocator.reserve(db, reference, req)
    return BookingRead.from_row(booking)


@router.get("", response_model=List[BookingRead])
async def list_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    date: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    area: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db)
):
    bookings = await BookingRepo.list_bookings(db, status_filter, date, city, area, limit)
    return [BookingRead.from_row(b) for b in bookings]


@router.get("/customer/{customer_id}", response_model=List[BookingRead])
async def customer_bookings(customer_id: int, db: AsyncSession = Depends(get_db)):
    bookings = await BookingRepo.list_for_customer(db, customer_id)
    return [BookingRead.from_row(b) for b in bookings]


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(booking_id: str, db: AsyncSession = Depends(get_db)):
    booking = await BookingRepo.get(db, booking_id)
    return BookingRead.from_row(booking)


@router.patch("/{booking_id}/status", response_model=BookingRead)
async def update_booking_status(
    booking_id: str,
    req: UpdateBookingStatusRequest,
    db: AsyncSession = Depends(get_db)
):
    """Move a booking one step through its lifecycle"""
    booking = await BookingRepo.transition(
        db, booking_id, req.status,
        actor=req.actor,
        emp_id=req.emp_id,
        reason=req.reason,
        transaction_id=req.transaction_id
    )
    return BookingRead.from_row(booking)


@router.post("/{booking_id}/review", response_model=BookingRead)
async def review_booking(booking_id: str, req: ReviewRequest, db: AsyncSession = Depends(get_db)):
    booking = await BookingRepo.add_review(db, booking_id, req.score, req.review)
    return BookingRead.from_row(booking)


@router.delete("/{booking_id}")
async def delete_booking(
    booking_id: str,
    db: AsyncSession = Depends(get_db),
    admin: dict = Depends(require_admin)
):
    await BookingRepo.delete(db, booking_id)
    return {"message": "Booking deleted successfully"}
