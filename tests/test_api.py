from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from dengue_watch.main import app
from dengue_watch.services.early_warning import EarlyWarningService, get_early_warning_service
from dengue_watch.services.store import get_store
from tests.fakes import RAINY_NOW


@pytest.fixture
def client(fake_store, notifier):
    fake_store.clock = lambda: RAINY_NOW
    app.dependency_overrides[get_store] = lambda: fake_store
    app.dependency_overrides[get_early_warning_service] = lambda: EarlyWarningService(
        fake_store, notifier=notifier, clock=lambda: RAINY_NOW
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_create_case(client, fake_store):
    barangay = fake_store.add_barangay("Poblacion")

    response = client.post("/cases", json={
        "barangay_id": barangay.id,
        "date_reported": "2024-07-10T09:30:00",
        "source": "RHU",
        "age": 12,
    })

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "SUSPECTED"
    assert body["source"] == "RHU"
    assert fake_store.cases[0].date_reported == datetime(2024, 7, 10, 9, 30)


def test_create_case_for_unknown_barangay(client, fake_store):
    response = client.post("/cases", json={
        "barangay_id": 404,
        "date_reported": "2024-07-10T09:30:00",
        "source": "RHU",
    })

    assert response.status_code == 400
    assert fake_store.cases == []


def test_create_case_validates_payload(client, fake_store):
    barangay = fake_store.add_barangay("Poblacion")

    response = client.post("/cases", json={
        "barangay_id": barangay.id,
        "date_reported": "2024-07-10T09:30:00",
        "source": "CLINIC",
    })

    assert response.status_code == 422


def test_case_intake_triggers_early_warning(client, fake_store, notifier):
    barangay = fake_store.add_barangay("Poblacion")

    for day in range(1, 11):
        response = client.post("/cases", json={
            "barangay_id": barangay.id,
            "date_reported": f"2024-07-{day:02d}T08:00:00",
            "source": "BHW",
        })
        assert response.status_code == 201

    alerts = client.get("/alerts", params={"status": "ACTIVE"}).json()
    assert len(alerts) == 1
    assert alerts[0]["risk_level"] == "HIGH"
    assert alerts[0]["title"] == "Early Warning Alert - Poblacion"
    assert alerts[0]["metadata"]["current_month_cases"] == 10
    assert [event for event, _ in notifier.events] == ["early_warning_alert"]


def test_update_case(client, fake_store):
    barangay = fake_store.add_barangay("Poblacion")
    fake_store.add_cases(barangay.id, datetime(2024, 7, 10))
    case = fake_store.cases[0]

    response = client.put(f"/cases/{case.id}", json={"status": "CONFIRMED"})

    assert response.status_code == 200
    assert response.json()["status"] == "CONFIRMED"
    assert case.status == "CONFIRMED"


def test_update_case_null_clears_optional_fields_only(client, fake_store):
    barangay = fake_store.add_barangay("Poblacion")
    fake_store.add_cases(barangay.id, datetime(2024, 7, 10))
    case = fake_store.cases[0]
    case.age = 30
    case.sex = "F"

    response = client.put(f"/cases/{case.id}", json={"age": None, "sex": None, "source": None})

    assert response.status_code == 200
    body = response.json()
    assert body["age"] is None
    assert body["sex"] is None
    assert body["source"] == "RHU"
    assert case.age is None


def test_update_report_null_clears_notes_but_not_flags(client, fake_store):
    barangay = fake_store.add_barangay("Poblacion")
    report = fake_store.add_report(barangay.id, datetime(2024, 7, 10), stagnant_water=True)
    report.notes = "Flooded canal"

    response = client.put(f"/reports/{report.id}", json={"notes": None, "stagnant_water": None})

    assert response.status_code == 200
    assert response.json()["notes"] is None
    assert response.json()["stagnant_water"] is True


def test_update_missing_case(client):
    response = client.put("/cases/999", json={"status": "CONFIRMED"})

    assert response.status_code == 404


def test_update_case_moving_barangay_runs_check(client, fake_store, notifier):
    first = fake_store.add_barangay("Poblacion")
    second = fake_store.add_barangay("Bonuan")
    fake_store.add_cases(second.id, datetime(2024, 7, 5), count=9)
    fake_store.add_cases(first.id, datetime(2024, 7, 10))
    moved = fake_store.cases[-1]

    response = client.put(f"/cases/{moved.id}", json={"barangay_id": second.id})

    assert response.status_code == 200
    assert [alert.barangay_id for alert in fake_store.active_alerts()] == [second.id]


def test_create_report(client, fake_store):
    barangay = fake_store.add_barangay("Poblacion")

    response = client.post("/reports", json={
        "barangay_id": barangay.id,
        "date_reported": "2024-07-10T09:30:00",
        "stagnant_water": True,
        "notes": "Flooded canal",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["stagnant_water"] is True
    assert body["clogged_drainage"] is False
    assert body["notes"] == "Flooded canal"


def test_update_missing_report(client):
    response = client.put("/reports/999", json={"notes": "n/a"})

    assert response.status_code == 404


def test_list_alerts_filters(client, fake_store):
    barangay = fake_store.add_barangay("Poblacion")
    fake_store.add_alert(barangay.id, "HIGH", triggered_at=datetime(2024, 7, 1))
    fake_store.add_alert(barangay.id, "MEDIUM", triggered_at=datetime(2024, 7, 2))
    fake_store.add_alert(barangay.id, "MEDIUM", status="RESOLVED", triggered_at=datetime(2024, 7, 3))

    medium = client.get("/alerts", params={"risk_level": "MEDIUM"}).json()
    active = client.get("/alerts", params={"status": "ACTIVE"}).json()

    assert [a["status"] for a in medium] == ["RESOLVED", "ACTIVE"]
    assert [a["risk_level"] for a in active] == ["MEDIUM", "HIGH"]


def test_public_alerts_limit_is_clamped(client, fake_store):
    barangay = fake_store.add_barangay("Poblacion")
    for day in range(1, 4):
        fake_store.add_alert(barangay.id, "HIGH", triggered_at=datetime(2024, 7, day))

    none_requested = client.get("/public/alerts", params={"limit": 0}).json()
    default = client.get("/public/alerts").json()

    assert len(none_requested["alerts"]) == 1
    assert len(default["alerts"]) == 3
    assert default["alerts"][0]["barangay"]["name"] == "Poblacion"


def test_public_forecast_summary_shape(client, fake_store):
    fake_store.add_barangay("Poblacion")

    body = client.get("/public/forecast-summary", params={"weeks": 100}).json()

    assert set(body) == {
        "meta",
        "stats",
        "weekly_trends",
        "forecast_next_4_weeks",
        "regional_risk_assessment",
        "active_alerts",
    }
    assert len(body["weekly_trends"]) == 52
    assert len(body["forecast_next_4_weeks"]) == 4
    assert body["meta"]["system_active"] is True


def test_public_time_series(client, fake_store):
    body = client.get("/public/time-series", params={"months": 6}).json()

    assert len(body["time_series"]) == 6
    assert all(point["cases"] == 0 for point in body["time_series"])


def test_public_stats(client, fake_store):
    fake_store.add_barangay("Poblacion")

    stats = client.get("/public/stats").json()["stats"]

    assert stats["total_barangays"] == 1
    assert stats["case_increase"] == 0


def test_dashboard_rankings(client, fake_store):
    barangay = fake_store.add_barangay("Poblacion")
    fake_store.add_cases(barangay.id, datetime(2024, 4, 1), count=2)
    fake_store.add_barangay("Bonuan")

    rankings = client.get("/dashboard/rankings", params={"year": 2024, "limit": 1}).json()["rankings"]

    assert [entry["name"] for entry in rankings] == ["Poblacion"]
    assert rankings[0]["risk_score"] == 4


def test_monthly_comparison(client):
    body = client.get("/dashboard/monthly-comparison", params={"year": 2024}).json()

    assert body["comparison"]["years"] == {"current": 2024, "previous": 2023}


def test_analytics_forecast(client):
    body = client.get("/analytics/forecast", params={"months": 6, "horizon": 2}).json()

    assert len(body["time_series"]) == 6
    assert len(body["predictions"]) == 2
    assert all(point["is_prediction"] for point in body["predictions"])


def test_get_alert(client, fake_store):
    barangay = fake_store.add_barangay("Poblacion")
    alert = fake_store.add_alert(barangay.id, "HIGH", triggered_at=datetime(2024, 7, 1))

    response = client.get(f"/alerts/{alert.id}")

    assert response.status_code == 200
    assert response.json()["risk_level"] == "HIGH"
    assert client.get("/alerts/999").status_code == 404


def test_dismiss_alert(client, fake_store):
    barangay = fake_store.add_barangay("Poblacion")
    alert = fake_store.add_alert(barangay.id, "MEDIUM", triggered_at=datetime(2024, 7, 1))

    response = client.put(f"/alerts/{alert.id}/status", json={"status": "DISMISSED"})

    assert response.status_code == 200
    assert response.json()["status"] == "DISMISSED"
    assert response.json()["resolved_at"] is None
    assert client.get("/alerts", params={"status": "ACTIVE"}).json() == []


def test_resolve_alert(client, fake_store):
    barangay = fake_store.add_barangay("Poblacion")
    alert = fake_store.add_alert(barangay.id, "HIGH", triggered_at=datetime(2024, 7, 1))

    response = client.put(f"/alerts/{alert.id}/resolve")

    assert response.status_code == 200
    assert response.json()["status"] == "RESOLVED"
    assert response.json()["resolved_at"] is not None
    assert alert.resolved_at is not None


def test_repeated_resolve_keeps_first_resolved_at(client, fake_store):
    barangay = fake_store.add_barangay("Poblacion")
    alert = fake_store.add_alert(barangay.id, "HIGH", triggered_at=datetime(2024, 7, 1))

    first = client.put(f"/alerts/{alert.id}/resolve").json()
    again = client.put(f"/alerts/{alert.id}/resolve").json()
    via_status = client.put(f"/alerts/{alert.id}/status", json={"status": "RESOLVED"}).json()

    assert first["resolved_at"] is not None
    assert again["resolved_at"] == first["resolved_at"]
    assert via_status["resolved_at"] == first["resolved_at"]


def test_alert_status_changes_for_unknown_alert(client):
    assert client.put("/alerts/999/resolve").status_code == 404
    assert client.put("/alerts/999/status", json={"status": "DISMISSED"}).status_code == 404


def test_alert_status_must_be_known(client, fake_store):
    barangay = fake_store.add_barangay("Poblacion")
    alert = fake_store.add_alert(barangay.id, "HIGH")

    response = client.put(f"/alerts/{alert.id}/status", json={"status": "ARCHIVED"})

    assert response.status_code == 422
    assert alert.status == "ACTIVE"


def test_list_alerts_by_barangay_with_paging(client, fake_store):
    first = fake_store.add_barangay("Poblacion")
    second = fake_store.add_barangay("Bonuan")
    for day in range(1, 4):
        fake_store.add_alert(first.id, "HIGH", triggered_at=datetime(2024, 7, day))
    fake_store.add_alert(second.id, "HIGH", triggered_at=datetime(2024, 7, 10))

    page = client.get("/alerts", params={"barangay_id": first.id, "limit": 2, "offset": 1}).json()

    assert [a["barangay_id"] for a in page] == [first.id, first.id]
    assert [a["triggered_at"] for a in page] == ["2024-07-02T00:00:00", "2024-07-01T00:00:00"]


def test_list_cases_with_filters(client, fake_store):
    first = fake_store.add_barangay("Poblacion")
    second = fake_store.add_barangay("Bonuan")
    fake_store.add_cases(first.id, datetime(2024, 6, 30), count=1)
    fake_store.add_cases(first.id, datetime(2024, 7, 5), count=2)
    fake_store.add_cases(second.id, datetime(2024, 7, 6), count=1)
    fake_store.cases[1].status = "CONFIRMED"

    by_barangay = client.get("/cases", params={"barangay_id": first.id}).json()
    in_july = client.get("/cases", params={
        "start_date": "2024-07-01T00:00:00",
        "end_date": "2024-07-31T23:59:59",
    }).json()
    confirmed = client.get("/cases", params={"status": "CONFIRMED"}).json()

    assert len(by_barangay) == 3
    assert by_barangay[0]["date_reported"] == "2024-07-05T00:00:00"
    assert len(in_july) == 3
    assert [case["id"] for case in confirmed] == [fake_store.cases[1].id]


def test_list_cases_paging(client, fake_store):
    barangay = fake_store.add_barangay("Poblacion")
    for day in range(1, 6):
        fake_store.add_cases(barangay.id, datetime(2024, 7, day))

    page = client.get("/cases", params={"limit": 2, "offset": 2}).json()

    assert [case["date_reported"] for case in page] == [
        "2024-07-03T00:00:00",
        "2024-07-02T00:00:00",
    ]
    assert client.get("/cases", params={"limit": 0}).status_code == 422


def test_get_case(client, fake_store):
    barangay = fake_store.add_barangay("Poblacion")
    fake_store.add_cases(barangay.id, datetime(2024, 7, 5))
    case = fake_store.cases[0]

    assert client.get(f"/cases/{case.id}").json()["barangay_id"] == barangay.id
    assert client.get("/cases/999").status_code == 404


def test_list_and_get_reports(client, fake_store):
    first = fake_store.add_barangay("Poblacion")
    second = fake_store.add_barangay("Bonuan")
    fake_store.add_report(first.id, datetime(2024, 6, 1))
    latest = fake_store.add_report(first.id, datetime(2024, 7, 1), clogged_drainage=True)
    fake_store.add_report(second.id, datetime(2024, 7, 2))

    reports = client.get("/reports", params={"barangay_id": first.id}).json()
    since_july = client.get("/reports", params={"start_date": "2024-07-01T00:00:00"}).json()

    assert [report["id"] for report in reports][0] == latest.id
    assert len(reports) == 2
    assert len(since_july) == 2
    assert client.get(f"/reports/{latest.id}").json()["clogged_drainage"] is True
    assert client.get("/reports/999").status_code == 404


def test_barangay_case_counts(client, fake_store):
    poblacion = fake_store.add_barangay("Poblacion", population=1200)
    bonuan = fake_store.add_barangay("Bonuan")
    fake_store.add_cases(poblacion.id, datetime(2023, 1, 1), count=3)

    staff = client.get("/dashboard/barangay-cases").json()["data"]
    public = client.get("/public/dashboard/barangay-cases").json()["data"]

    assert staff == public
    assert [(row["name"], row["case_count"], row["population"]) for row in staff] == [
        ("Bonuan", 0, 0),
        ("Poblacion", 3, 1200),
    ]
    assert staff[0]["id"] == bonuan.id


def test_case_trends(client):
    trends = client.get("/dashboard/trends", params={"months": 3}).json()["trends"]

    assert len(trends) == 3
    assert set(trends[0]) == {"month", "year", "month_number", "cases"}


def test_forecast_summary_rejects_non_numeric_weeks(client):
    assert client.get("/public/forecast-summary", params={"weeks": "abc"}).status_code == 422
