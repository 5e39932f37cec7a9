# tests/test_bookings.py - Reservations, availability and the booking lifecycle
import re
import asyncio
import pytest
from sqlalchemy import event, update
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Session
from conftest import booking_payload, make_employee, walk_booking
from config import DEFAULT_TIME_SLOTS
from repository.bookings import BookingRepo
from repository.services import ServiceTracker
from repository.slots import SlotAllocator
from tables.services import Service
from repository.reference import get_reference_store
from utils.auth import AdminToken
from utils.errors import StorageUnavailable, InvalidTransition


async def test_create_booking_returns_pending_booking(client):
    response = await client.post("/bookings", json=booking_payload())
    assert response.status_code == 201
    body = response.json()
    assert re.fullmatch(r"BK\d{6}\d{5}", body["bookingId"])
    assert body["status"] == "pending"
    assert body["contactInfo"]["email"] == "jane@example.com"
    assert body["payment"] == {
        "method": "upi",
        "amount": 500.0,
        "currency": "INR",
        "status": "pending",
        "transactionId": None,
        "paymentDate": None
    }
    assert body["schedule"] == {"preferredDate": "2030-05-01", "timeSlot": "9:00 AM - 11:00 AM"}


async def test_validation_reports_every_bad_field(client):
    payload = booking_payload(
        contactInfo={"fullName": "Jane", "phoneNumber": "abc", "email": "not-an-email"},
        location={"country": "India", "state": "Kerala", "city": "", "area": "Kakkanad"},
        schedule={"preferredDate": "2030-13-45", "timeSlot": ""},
        paymentMethod="cheque"
    )
    response = await client.post("/bookings", json=payload)
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["error"] == "validation_error"
    errors = " | ".join(detail["errors"])
    for field in [
        "contactInfo.email", "contactInfo.phoneNumber", "location.city", "location.completeAddress",
        "schedule.preferredDate", "schedule.timeSlot", "paymentMethod"
    ]:
        assert field in errors
    assert len(detail["errors"]) == 7


async def test_concurrent_reservations_admit_exactly_one(client):
    responses = await asyncio.gather(*[
        client.post("/bookings", json=booking_payload(customerId=i)) for i in range(8)
    ])
    codes = sorted(r.status_code for r in responses)
    assert codes == [201] + [409] * 7
    conflict = next(r for r in responses if r.status_code == 409)
    assert conflict.json()["detail"]["message"] == "Selected time slot is no longer available"


async def test_same_slot_in_other_area_is_allowed(client):
    first = await client.post("/bookings", json=booking_payload())
    other_location = dict(booking_payload()["location"], area="Edappally")
    second = await client.post("/bookings", json=booking_payload(location=other_location))
    assert first.status_code == 201
    assert second.status_code == 201


async def test_available_slots_excludes_booked(client):
    await client.post("/bookings", json=booking_payload())
    response = await client.get("/bookings/available-slots", params={
        "date": "2030-05-01", "city": "Kochi", "area": "Kakkanad"
    })
    assert response.status_code == 200
    body = response.json()
    assert body["date"] == "2030-05-01"
    assert body["bookedSlots"] == ["9:00 AM - 11:00 AM"]
    assert body["availableSlots"] == DEFAULT_TIME_SLOTS[1:]
    assert body["suggestedSlot"] == "11:00 AM - 1:00 PM"
    assert body["degraded"] is False


async def test_available_slots_rejects_bad_date(client):
    response = await client.get("/bookings/available-slots", params={"date": "tomorrow"})
    assert response.status_code == 400


async def test_available_slots_fall_back_when_reference_store_is_down(app, client):
    class BrokenReferenceStore:
        async def slots_for_service(self, service_id):
            raise StorageUnavailable()

        async def get_catalog_service(self, service_id):
            raise StorageUnavailable()

    app.dependency_overrides[get_reference_store] = lambda: BrokenReferenceStore()
    response = await client.get("/bookings/available-slots", params={"date": "2030-05-01", "serviceId": 3})
    assert response.status_code == 200
    body = response.json()
    assert body["availableSlots"] == DEFAULT_TIME_SLOTS
    assert body["degraded"] is True


async def test_catalog_slots_and_prices_are_authoritative(client, admin_headers):
    catalog = await client.post("/catalog", headers=admin_headers, json={
        "title": "AC service",
        "category": "AC Repair",
        "price": 1200,
        "duration": 3,
        "timeSlots": ["8:00 AM - 11:00 AM", "2:00 PM - 5:00 PM"]
    })
    assert catalog.status_code == 201
    service_id = catalog.json()["id"]

    slots = await client.get("/bookings/available-slots", params={"date": "2030-05-01", "serviceId": service_id})
    assert slots.json()["availableSlots"] == ["8:00 AM - 11:00 AM", "2:00 PM - 5:00 PM"]

    response = await client.post("/bookings", json=booking_payload(serviceId=service_id))
    assert response.status_code == 201
    details = response.json()["serviceDetails"]
    assert details["title"] == "AC service"
    assert details["price"] == 1200
    assert response.json()["serviceId"] == service_id


async def test_unknown_catalog_service_is_rejected(client):
    response = await client.post("/bookings", json=booking_payload(serviceId=999))
    assert response.status_code == 400


async def test_cancel_frees_the_slot(client):
    booking = (await client.post("/bookings", json=booking_payload())).json()
    response = await client.patch(f"/bookings/{booking['bookingId']}/status", json={
        "status": "cancelled", "reason": "Customer unavailable"
    })
    assert response.status_code == 200
    assert response.json()["cancellationReason"] == "Customer unavailable"
    assert response.json()["cancelledAt"] is not None

    again = await client.post("/bookings", json=booking_payload())
    assert again.status_code == 201


async def test_lifecycle_rejects_skipping_states(client):
    booking = (await client.post("/bookings", json=booking_payload())).json()
    response = await client.patch(f"/bookings/{booking['bookingId']}/status", json={"status": "completed"})
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "invalid_transition"

    same = await client.patch(f"/bookings/{booking['bookingId']}/status", json={"status": "pending"})
    assert same.status_code == 409


async def test_terminal_booking_cannot_move(client):
    booking = (await client.post("/bookings", json=booking_payload())).json()
    await client.patch(f"/bookings/{booking['bookingId']}/status", json={"status": "cancelled"})
    response = await client.patch(f"/bookings/{booking['bookingId']}/status", json={"status": "confirmed"})
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "terminal_state"


async def test_assign_requires_employee(client):
    booking = (await client.post("/bookings", json=booking_payload())).json()
    await walk_booking(client, booking["bookingId"], None, "confirmed")
    missing = await client.patch(f"/bookings/{booking['bookingId']}/status", json={"status": "assigned"})
    assert missing.status_code == 400
    unknown = await client.patch(f"/bookings/{booking['bookingId']}/status", json={"status": "assigned", "empId": 42})
    assert unknown.status_code == 404


async def test_full_lifecycle_materializes_payment(client):
    employee = await make_employee(client)
    booking = (await client.post("/bookings", json=booking_payload())).json()
    done = await walk_booking(
        client, booking["bookingId"], employee["id"], "confirmed", "assigned", "in_progress", "completed"
    )
    assert done["status"] == "completed"
    assert done["assignedTo"] == employee["id"]
    assert done["payment"]["status"] == "paid"
    assert done["completedAt"] is not None

    services = (await client.get(f"/services/employee/{employee['id']}")).json()
    assert len(services) == 1
    assert services[0]["status"] == "completed"
    assert services[0]["actualEarnings"] == 500

    dashboard = (await client.get(f"/payments/employee/{employee['id']}/dashboard")).json()
    assert len(dashboard["payments"]) == 1
    payment = dashboard["payments"][0]
    assert payment["amount"] == 500
    assert payment["commission"] == 100
    assert payment["paymentMethod"] == "bank_transfer"
    assert payment["baseRate"] == 250
    assert dashboard["upcomingPayments"] == []


async def test_assignment_projects_upcoming_payment(client):
    employee = await make_employee(client)
    booking = (await client.post("/bookings", json=booking_payload())).json()
    await walk_booking(client, booking["bookingId"], employee["id"], "confirmed", "assigned")

    upcoming = (await client.get(f"/upcoming-payments/employee/{employee['id']}")).json()
    assert len(upcoming) == 1
    assert upcoming[0]["estimatedAmount"] == 500
    assert upcoming[0]["status"] == "scheduled"

    await walk_booking(client, booking["bookingId"], employee["id"], "in_progress")
    upcoming = (await client.get(f"/upcoming-payments/employee/{employee['id']}")).json()
    assert upcoming[0]["status"] == "in-progress"

    await client.patch(f"/bookings/{booking['bookingId']}/status", json={"status": "cancelled"})
    assert (await client.get(f"/upcoming-payments/employee/{employee['id']}")).json() == []
    services = (await client.get(f"/services/employee/{employee['id']}")).json()
    assert services[0]["status"] == "cancelled"


async def test_review_only_after_completion(client):
    employee = await make_employee(client)
    booking = (await client.post("/bookings", json=booking_payload())).json()
    early = await client.post(f"/bookings/{booking['bookingId']}/review", json={"score": 5})
    assert early.status_code == 409
    assert early.json()["detail"]["error"] == "precondition_failed"

    await walk_booking(
        client, booking["bookingId"], employee["id"], "confirmed", "assigned", "in_progress", "completed"
    )
    response = await client.post(f"/bookings/{booking['bookingId']}/review", json={"score": 4, "review": "Quick fix"})
    assert response.status_code == 200
    assert response.json()["rating"]["score"] == 4

    again = await client.post(f"/bookings/{booking['bookingId']}/review", json={"score": 5})
    assert again.status_code == 409

    profile = (await client.get(f"/employees/{employee['id']}")).json()
    assert profile["rating"] == 4.0
    assert profile["completedJobs"] == 1


async def test_review_score_out_of_range(client):
    booking = (await client.post("/bookings", json=booking_payload())).json()
    response = await client.post(f"/bookings/{booking['bookingId']}/review", json={"score": 6})
    assert response.status_code == 400


async def test_delete_requires_admin(client, admin_headers):
    booking = (await client.post("/bookings", json=booking_payload())).json()
    url = f"/bookings/{booking['bookingId']}"

    assert (await client.delete(url)).status_code == 401
    customer = {"Authorization": f"Bearer {AdminToken.generate('jane', role='customer')}"}
    assert (await client.delete(url, headers=customer)).status_code == 403
    assert (await client.delete(url, headers=admin_headers)).status_code == 200
    assert (await client.get(url)).status_code == 404


async def test_list_and_customer_bookings(client):
    await client.post("/bookings", json=booking_payload(customerId=1))
    second_schedule = {"preferredDate": "2030-05-02", "timeSlot": "9:00 AM - 11:00 AM"}
    await client.post("/bookings", json=booking_payload(customerId=2, schedule=second_schedule))

    everything = (await client.get("/bookings")).json()
    assert len(everything) == 2
    on_date = (await client.get("/bookings", params={"date": "2030-05-02"})).json()
    assert [b["customerId"] for b in on_date] == [2]
    mine = (await client.get("/bookings/customer/1")).json()
    assert len(mine) == 1


async def test_slot_comparison_ignores_case_and_spacing(client):
    assert (await client.post("/bookings", json=booking_payload())).status_code == 201
    location = dict(booking_payload()["location"], city="kochi", area="  KAKKANAD ")
    schedule = {"preferredDate": "2030-05-01", "timeSlot": "9:00 am -  11:00 am"}
    response = await client.post("/bookings", json=booking_payload(customerId=8, location=location, schedule=schedule))
    assert response.status_code == 409

    slots = (await client.get("/bookings/available-slots", params={
        "date": "2030-05-01", "city": "KOCHI", "area": "kakkanad"
    })).json()
    assert slots["bookedSlots"] == ["9:00 AM - 11:00 AM"]
    assert "9:00 AM - 11:00 AM" not in slots["availableSlots"]


async def test_unique_index_backs_the_slot_check(client, monkeypatch):
    async def no_holder(*args, **kwargs):
        return None

    first = (await client.post("/bookings", json=booking_payload())).json()
    monkeypatch.setattr(SlotAllocator, "slot_holder", staticmethod(no_holder))

    clash = await client.post("/bookings", json=booking_payload(customerId=9))
    assert clash.status_code == 409
    assert clash.json()["detail"]["error"] == "slot_conflict"

    await client.patch(f"/bookings/{first['bookingId']}/status", json={"status": "cancelled"})
    again = await client.post("/bookings", json=booking_payload(customerId=9))
    assert again.status_code == 201


async def assigned_booking(client, **overrides):
    employee = await make_employee(client)
    booking = (await client.post("/bookings", json=booking_payload(**overrides))).json()
    await walk_booking(client, booking["bookingId"], employee["id"], "confirmed", "assigned")
    service = (await client.get(f"/services/employee/{employee['id']}")).json()[0]
    return booking["bookingId"], service["serviceId"]


async def test_service_cancel_releases_the_booking(client):
    booking_id, sid = await assigned_booking(client)
    response = await client.patch(f"/services/{sid}/status", json={"status": "cancelled", "notes": "Customer away"})
    assert response.status_code == 200

    booking = (await client.get(f"/bookings/{booking_id}")).json()
    assert booking["status"] == "cancelled"
    assert booking["cancellationReason"] == "Customer away"
    assert (await client.post("/bookings", json=booking_payload(customerId=11))).status_code == 201


async def test_service_start_and_complete_move_the_booking(client):
    booking_id, sid = await assigned_booking(client)
    await client.patch(f"/services/{sid}/confirm")
    assert (await client.get(f"/bookings/{booking_id}")).json()["status"] == "assigned"

    await client.patch(f"/services/{sid}/start")
    assert (await client.get(f"/bookings/{booking_id}")).json()["status"] == "in_progress"

    done = await client.patch(f"/services/{sid}/complete", json={"actualEarnings": 450})
    assert done.status_code == 200
    booking = (await client.get(f"/bookings/{booking_id}")).json()
    assert booking["status"] == "completed"
    assert booking["payment"]["status"] == "paid"
    assert booking["completedAt"] is not None
    assert (await client.post("/bookings", json=booking_payload(customerId=12))).status_code == 201


async def test_booking_cannot_start_when_service_is_terminal(client, session_factory):
    booking_id, sid = await assigned_booking(client)
    async with session_factory() as db:
        await db.execute(update(Service).where(Service.service_id == sid).values(status="cancelled"))
        await db.commit()

    response = await client.patch(f"/bookings/{booking_id}/status", json={"status": "in_progress"})
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "precondition_failed"
    assert (await client.get(f"/bookings/{booking_id}")).json()["status"] == "assigned"


async def test_service_reschedule_moves_the_booking_slot(client):
    booking_id, sid = await assigned_booking(client)
    await client.patch(f"/services/{sid}/confirm")
    await client.patch(f"/services/{sid}/start")

    response = await client.patch(f"/services/{sid}/reschedule", json={
        "scheduledDate": "2030-05-03", "time": "11:00 AM - 1:00 PM"
    })
    assert response.status_code == 200
    booking = (await client.get(f"/bookings/{booking_id}")).json()
    assert booking["schedule"] == {"preferredDate": "2030-05-03", "timeSlot": "11:00 AM - 1:00 PM"}
    assert booking["status"] == "assigned"

    # the old slot is free, the new one is taken
    assert (await client.post("/bookings", json=booking_payload(customerId=13))).status_code == 201
    moved = {"preferredDate": "2030-05-03", "timeSlot": "11:00 AM - 1:00 PM"}
    assert (await client.post("/bookings", json=booking_payload(customerId=14, schedule=moved))).status_code == 409


async def test_service_reschedule_refuses_a_held_slot(client):
    booking_id, sid = await assigned_booking(client)
    taken = {"preferredDate": "2030-05-04", "timeSlot": "9:00 AM - 11:00 AM"}
    await client.post("/bookings", json=booking_payload(customerId=15, schedule=taken))

    response = await client.patch(f"/services/{sid}/reschedule", json={
        "scheduledDate": "2030-05-04", "time": "9:00 AM - 11:00 AM"
    })
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "slot_conflict"
    booking = (await client.get(f"/bookings/{booking_id}")).json()
    assert booking["schedule"]["preferredDate"] == "2030-05-01"


async def test_service_reschedule_after_booking_completed(client):
    booking_id, sid = await assigned_booking(client)
    await client.patch(f"/bookings/{booking_id}/status", json={"status": "in_progress"})
    await client.patch(f"/bookings/{booking_id}/status", json={"status": "completed"})

    response = await client.patch(f"/services/{sid}/reschedule", json={
        "scheduledDate": "2030-06-01", "time": "9:00 AM - 11:00 AM"
    })
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "precondition_failed"


async def test_lifecycle_writes_lock_their_rows(client):
    statements = []

    def capture(state):
        if state.is_select:
            statements.append(str(state.statement.compile(dialect=postgresql.dialect())))

    booking_id, sid = await assigned_booking(client)
    event.listen(Session, "do_orm_execute", capture)
    try:
        await client.patch(f"/bookings/{booking_id}/status", json={"status": "in_progress"})
        await client.patch(f"/services/{sid}/complete", json={})
    finally:
        event.remove(Session, "do_orm_execute", capture)

    locked = [s for s in statements if s.rstrip().endswith("FOR UPDATE")]
    assert any("FROM bookings" in s for s in locked)
    assert any("FROM services" in s for s in locked)


async def test_second_work_item_for_a_booking_is_rejected(client, session_factory):
    employee = await make_employee(client)
    booking = (await client.post("/bookings", json=booking_payload())).json()
    async with session_factory() as db:
        row = await BookingRepo.get(db, booking["bookingId"])
        await ServiceTracker.create_for_booking(db, row, employee["id"])
        await db.commit()
        with pytest.raises(InvalidTransition):
            await ServiceTracker.create_for_booking(db, row, employee["id"])
        await db.rollback()
