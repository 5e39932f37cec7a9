# tests/test_payments.py - Earnings dashboard, statistics, export and projections
from conftest import make_employee, make_service
from repository.ledger import EarningsLedger
from repository.services import ServiceTracker
from utils.timeutils import utcnow


async def complete_service(client, emp_id, **complete_body):
    service = await make_service(client, emp_id)
    sid = service["serviceId"]
    for step in ("confirm", "start"):
        await client.patch(f"/services/{sid}/{step}")
    response = await client.patch(f"/services/{sid}/complete", json=complete_body)
    assert response.status_code == 200, response.text
    return response.json()


async def test_dashboard_is_zero_safe(client):
    employee = await make_employee(client)
    response = await client.get(f"/payments/employee/{employee['id']}/dashboard")
    assert response.status_code == 200
    body = response.json()
    assert body["payments"] == []
    assert body["stats"] == {
        "totalEarnings": 0,
        "pendingAmount": 0,
        "totalCommission": 0,
        "averageEarning": 0,
        "completedCount": 0,
        "pendingCount": 0,
        "totalServices": 0
    }
    assert body["paymentMethods"] == {"credit_card": 0, "cash": 0, "bank_transfer": 0}


async def test_dashboard_totals_and_pending(client):
    employee = await make_employee(client)
    first = await complete_service(client, employee["id"], actualEarnings=100, paymentMethod="cash")
    await complete_service(client, employee["id"], actualEarnings=300, paymentMethod="credit_card")
    await client.patch(f"/payments/{first['payment']['paymentId']}/status", json={"status": "pending"})

    stats = (await client.get(f"/payments/employee/{employee['id']}/dashboard")).json()
    assert stats["stats"]["totalEarnings"] == 300
    assert stats["stats"]["pendingAmount"] == 100
    assert stats["stats"]["averageEarning"] == 300
    assert stats["stats"]["completedCount"] == 1
    assert stats["stats"]["pendingCount"] == 1
    assert stats["stats"]["totalServices"] == 2
    assert stats["paymentMethods"]["credit_card"] == 1


async def test_csv_export_line(client):
    employee = await make_employee(client)
    await complete_service(client, employee["id"], actualEarnings=100, completionTime="2024-01-01T00:00:00")

    response = await client.get(f"/payments/employee/{employee['id']}/export", params={"format": "csv"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == f"attachment; filename=payments-{employee['id']}.csv"
    lines = response.text.strip().split("\n")
    assert lines[0] == "PaymentID,ServiceType,Customer,Amount,Commission,Status,Date"
    assert lines[1] == "1001,Plumbing,Jane Doe,100,20,completed,2024-01-01T00:00:00.000Z"


async def test_json_export_with_date_range(client):
    employee = await make_employee(client)
    await complete_service(client, employee["id"], completionTime="2024-01-01T10:00:00")
    await complete_service(client, employee["id"], completionTime="2024-03-01T10:00:00")

    response = await client.get(f"/payments/employee/{employee['id']}/export", params={
        "startDate": "2024-02-01", "endDate": "2024-03-31"
    })
    assert response.status_code == 200
    assert len(response.json()) == 1

    bad = await client.get(f"/payments/employee/{employee['id']}/export", params={"format": "xml"})
    assert bad.status_code == 400


async def test_earnings_time_series_buckets_by_day(client):
    employee = await make_employee(client)
    await complete_service(client, employee["id"], actualEarnings=100)
    await complete_service(client, employee["id"], actualEarnings=50)
    await complete_service(client, employee["id"], actualEarnings=70, completionTime="2020-01-01T00:00:00")

    response = await client.get(f"/payments/employee/{employee['id']}/statistics", params={"period": "week"})
    assert response.status_code == 200
    buckets = response.json()
    today = utcnow().date()
    assert buckets == [{
        "date": today.isoformat(),
        "year": today.year,
        "month": today.month,
        "day": today.day,
        "totalEarnings": 150,
        "totalCommission": 30,
        "count": 2
    }]


async def test_filter_payments(client):
    employee = await make_employee(client)
    await complete_service(client, employee["id"])
    await complete_service(client, employee["id"], completionTime="2020-01-01T00:00:00")

    recent = (await client.get(f"/payments/employee/{employee['id']}/filter", params={"timeFilter": "month"})).json()
    assert len(recent) == 1
    everything = (await client.get(f"/payments/employee/{employee['id']}/filter")).json()
    assert len(everything) == 2
    pending = (await client.get(f"/payments/employee/{employee['id']}/filter", params={"statusFilter": "pending"})).json()
    assert pending == []


async def test_get_payment_and_not_found(client):
    employee = await make_employee(client)
    done = await complete_service(client, employee["id"])
    payment_id = done["payment"]["paymentId"]
    response = await client.get(f"/payments/{payment_id}")
    assert response.status_code == 200
    assert response.json()["serviceId"] == done["service"]["serviceId"]
    assert (await client.get("/payments/9999")).status_code == 404


async def test_upcoming_payment_endpoints(client, admin_headers):
    employee = await make_employee(client)
    service = await make_service(client, employee["id"])
    upcoming = (await client.get(f"/upcoming-payments/employee/{employee['id']}")).json()[0]

    updated = await client.patch(f"/upcoming-payments/{upcoming['upcomingId']}/status", json={"status": "confirmed"})
    assert updated.json()["status"] == "confirmed"

    refreshed = await client.post("/upcoming-payments", json={
        "serviceId": service["serviceId"], "estimatedAmount": 250, "notes": "Parts included"
    })
    assert refreshed.status_code == 201
    assert refreshed.json()["upcomingId"] == upcoming["upcomingId"]
    assert refreshed.json()["estimatedAmount"] == 250

    assert (await client.delete(f"/upcoming-payments/{upcoming['upcomingId']}")).status_code == 401
    deleted = await client.delete(f"/upcoming-payments/{upcoming['upcomingId']}", headers=admin_headers)
    assert deleted.status_code == 200
    assert (await client.get(f"/upcoming-payments/employee/{employee['id']}")).json() == []


async def test_duplicate_payment_insert_keeps_the_first(client, session_factory, monkeypatch):
    employee = await make_employee(client)
    done = await complete_service(client, employee["id"], actualEarnings=120)
    sid = done["service"]["serviceId"]

    lookup = EarningsLedger.payment_for_service
    calls = []

    async def miss_first_lookup(db, service_id):
        calls.append(service_id)
        if len(calls) == 1:
            return None
        return await lookup(db, service_id)

    monkeypatch.setattr(EarningsLedger, "payment_for_service", staticmethod(miss_first_lookup))
    async with session_factory() as db:
        service = await ServiceTracker.get_service(db, sid)
        payment = await EarningsLedger.materialize_payment(db, service)
        await db.commit()

    assert len(calls) == 2
    assert payment.payment_id == done["payment"]["paymentId"]
    assert payment.amount == 120
    dashboard = (await client.get(f"/payments/employee/{employee['id']}/dashboard")).json()
    assert len(dashboard["payments"]) == 1
