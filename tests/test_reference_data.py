# tests/test_reference_data.py - Locations, employees, catalog and rate limiting
from conftest import make_employee
from utils.rate_limiter import reference_limiter, SlidingWindowLimiter


async def test_location_hierarchy_crud(client):
    country = await client.post("/countries", json={"countryName": "India"})
    assert country.status_code == 201
    country_id = country.json()["countryId"]

    state = await client.post("/states", json={"stateName": "Kerala", "countryId": country_id})
    assert state.status_code == 201
    assert (await client.get("/states", params={"countryId": country_id})).json()[0]["stateName"] == "Kerala"
    assert (await client.get("/states", params={"countryId": country_id + 1})).json() == []

    orphan = await client.post("/cities", json={"cityName": "Nowhere", "stateId": 999})
    assert orphan.status_code == 400
    assert orphan.json()["detail"]["errors"] == ["stateId does not exist"]

    renamed = await client.put(f"/countries/{country_id}", json={"countryName": "Bharat"})
    assert renamed.json()["countryName"] == "Bharat"

    duplicate = await client.post("/countries", json={"countryName": "Bharat"})
    assert duplicate.status_code == 409

    assert (await client.delete(f"/countries/{country_id}")).status_code == 200
    assert (await client.get(f"/countries/{country_id}")).status_code == 404


async def test_blank_location_name_is_rejected(client):
    response = await client.post("/countries", json={"countryName": "   "})
    assert response.status_code == 400


async def test_reference_endpoints_are_rate_limited(client, monkeypatch):
    monkeypatch.setattr(reference_limiter, "max_requests", 3)
    codes = [(await client.get("/countries")).status_code for _ in range(4)]
    assert codes == [200, 200, 200, 429]
    assert (await client.get("/countries")).json()["detail"]["error"] == "rate_limited"


def test_sliding_window_expires_old_hits():
    limiter = SlidingWindowLimiter(window_seconds=10, max_requests=2)
    assert limiter.allow("1.2.3.4", now=0)
    assert limiter.allow("1.2.3.4", now=1)
    assert not limiter.allow("1.2.3.4", now=5)
    assert limiter.allow("5.6.7.8", now=5)
    assert limiter.allow("1.2.3.4", now=10.5)


def test_idle_clients_are_forgotten():
    limiter = SlidingWindowLimiter(window_seconds=10, max_requests=5)
    limiter.allow("1.2.3.4", now=0)
    limiter.allow("5.6.7.8", now=1)
    assert limiter.tracked_clients() == 2
    assert limiter.allow("9.9.9.9", now=20)
    assert limiter.tracked_clients() == 1


async def test_employee_profile(client):
    employee = await make_employee(client, name="Ravi Kumar")
    assert employee["avatar"] == "RK"
    assert employee["status"] == "Active"
    assert employee["rating"] == 0

    updated = await client.put(f"/employees/{employee['id']}", json={"name": "Anil Menon", "bio": "Ten years on the tools"})
    assert updated.status_code == 200
    assert updated.json()["avatar"] == "AM"

    activities = (await client.get(f"/employees/{employee['id']}/activities")).json()
    assert activities[0]["type"] == "profile_updated"

    assert len((await client.get("/employees")).json()) == 1


async def test_employee_requires_known_locations(client):
    response = await client.post("/employees", json={
        "name": "Ravi", "email": "ravi@example.com", "phone": "9876543210",
        "countryId": 1, "stateId": 2, "cityId": 3, "areaId": 4
    })
    assert response.status_code == 400
    assert response.json()["detail"]["errors"] == [
        "countryId does not exist", "stateId does not exist", "cityId does not exist", "areaId does not exist"
    ]


async def test_duplicate_employee_email(client):
    await make_employee(client, email="same@example.com")
    again = await make_employee_raw(client, "same@example.com")
    assert again.status_code == 409


async def make_employee_raw(client, email):
    ids = {
        "countryId": (await client.get("/countries")).json()[0]["countryId"],
        "stateId": (await client.get("/states")).json()[0]["stateId"],
        "cityId": (await client.get("/cities")).json()[0]["cityId"],
        "areaId": (await client.get("/areas")).json()[0]["areaId"],
    }
    return await client.post("/employees", json={"name": "Other", "email": email, "phone": "123456789", **ids})


async def test_delete_employee_requires_admin(client, admin_headers):
    employee = await make_employee(client)
    assert (await client.delete(f"/employees/{employee['id']}")).status_code == 401
    assert (await client.delete(f"/employees/{employee['id']}", headers=admin_headers)).status_code == 200
    assert (await client.get(f"/employees/{employee['id']}")).status_code == 404


async def test_catalog_requires_admin_to_create(client, admin_headers):
    payload = {"title": "Deep cleaning", "category": "Cleaning", "price": 900}
    assert (await client.post("/catalog", json=payload)).status_code == 401
    created = await client.post("/catalog", json=payload, headers=admin_headers)
    assert created.status_code == 201
    assert created.json()["timeSlots"] == []
    listed = (await client.get("/catalog")).json()
    assert [c["title"] for c in listed] == ["Deep cleaning"]


async def test_root_and_health():
    from httpx import AsyncClient, ASGITransport
    from api.index import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        assert (await client.get("/health")).json()["status"] == "healthy"
        assert (await client.get("/")).json()["message"] == "Home Services Booking API"
