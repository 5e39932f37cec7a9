# routes/services.py - Technician work items: transitions, notes, ratings and views
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models.payments import PaymentRead
from models.services import (
    ServiceCreate, ServiceUpdate, ServiceRead, ServiceDetails, NoteCreate, NoteRead,
    TransitionRequest, StatusUpdateRequest, CompleteRequest, RescheduleRequest, RatingRequest,
    HistoryEntry, QuickActions, CustomerContact
)
from models.base import CamelModel
from repository.services import ServiceTracker
from typing import Optional, List

router = APIRouter(prefix="/services", tags=["Services"])


class CompletionResponse(CamelModel):
    message: str
    service: ServiceRead
    payment: PaymentRead


class ActionResponse(CamelModel):
    message: str
    service: ServiceRead


@router.post("", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
async def create_service(req: ServiceCreate, db: AsyncSession = Depends(get_db)):
    service = await ServiceTracker.create_service(db, req)
    return ServiceRead.from_row(service)


@router.get("/employee/{emp_id}", response_model=List[ServiceRead])
async def employee_services(
    emp_id: int,
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db)
):
    services = await ServiceTracker.list_for_employee(db, emp_id, status_filter, limit)
    return [ServiceRead.from_row(s) for s in services]


@router.get("/{service_id}", response_model=ServiceDetails)
async def service_details(service_id: int, db: AsyncSession = Depends(get_db)):
    """Service with its note history, newest first"""
    return await ServiceTracker.details(db, service_id)


@router.patch("/{service_id}", response_model=ServiceRead)
async def update_service(service_id: int, req: ServiceUpdate, db: AsyncSession = Depends(get_db)):
    service = await ServiceTracker.update_info(db, service_id, req)
    return ServiceRead.from_row(service)


@router.patch("/{service_id}/status", response_model=ActionResponse)
async def update_service_status(service_id: int, req: StatusUpdateRequest, db: AsyncSession = Depends(get_db)):
    service = await ServiceTracker.update_status(db, service_id, req.status, req.notes)
    return ActionResponse(message=f"Service status updated to {req.status}", service=ServiceRead.from_row(service))


@router.patch("/{service_id}/confirm", response_model=ActionResponse)
async def confirm_service(service_id: int, req: TransitionRequest = TransitionRequest(),
                          db: AsyncSession = Depends(get_db)):
    service = await ServiceTracker.confirm(db, service_id, req.notes)
    return ActionResponse(message="Service confirmed successfully", service=ServiceRead.from_row(service))


@router.patch("/{service_id}/start", response_model=ActionResponse)
async def start_service(service_id: int, req: TransitionRequest = TransitionRequest(),
                        db: AsyncSession = Depends(get_db)):
    service = await ServiceTracker.start(db, service_id, req.notes)
    return ActionResponse(message="Service started successfully", service=ServiceRead.from_row(service))


@router.patch("/{service_id}/complete", response_model=CompletionResponse)
async def complete_service(service_id: int, req: CompleteRequest = CompleteRequest(),
                           db: AsyncSession = Depends(get_db)):
    service, payment = await ServiceTracker.complete(
        db, service_id,
        actual_earnings=req.actual_earnings,
        commission=req.commission,
        bonus=req.bonus,
        payment_method=req.payment_method,
        completion_time=req.completion_time,
        notes=req.notes
    )
    return CompletionResponse(
        message="Service completed successfully",
        service=ServiceRead.from_row(service),
        payment=PaymentRead.from_row(payment)
    )


@router.patch("/{service_id}/reschedule", response_model=ActionResponse)
async def reschedule_service(service_id: int, req: RescheduleRequest, db: AsyncSession = Depends(get_db)):
    service = await ServiceTracker.reschedule(db, service_id, req.scheduled_date, req.time, req.notes)
    return ActionResponse(message="Service rescheduled successfully", service=ServiceRead.from_row(service))


@router.post("/{service_id}/notes", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
async def add_note(service_id: int, req: NoteCreate, db: AsyncSession = Depends(get_db)):
    note = await ServiceTracker.add_note(db, service_id, req)
    return NoteRead.model_validate(note)


@router.get("/{service_id}/notes", response_model=List[NoteRead])
async def list_notes(service_id: int, db: AsyncSession = Depends(get_db)):
    notes = await ServiceTracker.list_notes(db, service_id)
    return [NoteRead.model_validate(n) for n in notes]


@router.post("/{service_id}/rating", response_model=ServiceRead)
async def rate_service(service_id: int, req: RatingRequest, db: AsyncSession = Depends(get_db)):
    service = await ServiceTracker.rate(db, service_id, req.rating, req.feedback)
    return ServiceRead.from_row(service)


@router.get("/{service_id}/history", response_model=List[HistoryEntry])
async def service_history(service_id: int, db: AsyncSession = Depends(get_db)):
    return await ServiceTracker.history(db, service_id)


@router.get("/{service_id}/quick-actions", response_model=QuickActions)
async def quick_actions(service_id: int, db: AsyncSession = Depends(get_db)):
    return await ServiceTracker.quick_actions(db, service_id)


@router.get("/{service_id}/customer-contact", response_model=CustomerContact)
async def customer_contact(service_id: int, db: AsyncSession = Depends(get_db)):
    return await ServiceTracker.customer_contact(db, service_id)
