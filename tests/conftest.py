# tests/conftest.py - Fresh SQLite database and HTTP client per test
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession
from config import build_engine, get_db
from main import create_app, init_db
from utils.auth import AdminToken
from utils.rate_limiter import reference_limiter


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def app(engine, session_factory):
    await init_db(engine, session_factory)
    app = create_app(use_lifespan=False)

    async def override_get_db():
        async with session_factory() as db:
            yield db

    app.dependency_overrides[get_db] = override_get_db
    reference_limiter.reset()
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {AdminToken.generate()}"}


def booking_payload(**overrides):
    payload = {
        "customerId": 7,
        "serviceDetails": {"title": "Pipe repair", "price": 500, "duration": 2, "category": "Plumbing"},
        "contactInfo": {"fullName": "Jane Doe", "phoneNumber": "+91 98765 43210", "email": "Jane@Example.com"},
        "location": {
            "country": "India",
            "state": "Kerala",
            "city": "Kochi",
            "area": "Kakkanad",
            "completeAddress": "12 Main Road"
        },
        "schedule": {"preferredDate": "2030-05-01", "timeSlot": "9:00 AM - 11:00 AM"},
        "paymentMethod": "upi"
    }
    payload.update(overrides)
    return payload


async def make_employee(client, email="tech@example.com", name="Ravi Kumar"):
    country = (await client.post("/countries", json={"countryName": f"India {email}"})).json()
    state = (await client.post("/states", json={"stateName": "Kerala", "countryId": country["countryId"]})).json()
    city = (await client.post("/cities", json={"cityName": "Kochi", "stateId": state["stateId"]})).json()
    area = (await client.post("/areas", json={"areaName": "Kakkanad", "cityId": city["cityId"]})).json()
    response = await client.post("/employees", json={
        "name": name,
        "email": email,
        "phone": "9876543210",
        "role": "Plumber",
        "countryId": country["countryId"],
        "stateId": state["stateId"],
        "cityId": city["cityId"],
        "areaId": area["areaId"]
    })
    assert response.status_code == 201, response.text
    return response.json()


async def make_service(client, emp_id, **overrides):
    payload = {
        "empId": emp_id,
        "title": "Kitchen sink leak",
        "description": "Leak under the sink",
        "serviceType": "Plumbing",
        "customer": {"name": "Jane Doe", "address": "12 Main Road", "phone": "9999999999", "email": "jane@example.com"},
        "scheduledDate": "2030-05-01",
        "time": "10:00 AM",
        "duration": 2,
        "estimatedEarnings": 100
    }
    payload.update(overrides)
    response = await client.post("/services", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def walk_booking(client, booking_id, emp_id, *statuses):
    for status in statuses:
        body = {"status": status, "actor": "operator"}
        if status == "assigned":
            body["empId"] = emp_id
        response = await client.patch(f"/bookings/{booking_id}/status", json=body)
        assert response.status_code == 200, response.text
    return response.json()
