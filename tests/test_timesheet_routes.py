"""
Test Timesheet Endpoints

This module tests the timesheet API including:
- Creation with wage snapshot
- Role and tenant restrictions
- Edits and deletes
- Listing with totals
- Error bodies
"""

from fleetsheet.shared.database import EMPLOYEES, TIMESHEETS

TEST_TIMESHEET = {
    "employeeId": "e1",
    "date": "2024-05-01",
    "leaveType": "None",
    "clientId": "c1",
    "projectId": "p1",
    "startTime": "09:00",
    "endTime": "17:30",
    "lunchBreak": "Yes",
    "lunchDuration": "00:30",
    "notes": "Post holes",
    "timezone": "UTC",
}


def create(client, **overrides):
    return client.post("/api/timesheets", json={**TEST_TIMESHEET, **overrides})


def test_create_timesheet(test_client, fake_db):
    """Test timesheet creation"""
    response = create(test_client)

    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Timesheet created successfully"
    entry = data["data"]
    assert entry["totalHours"] == 8.0
    assert entry["hourlyWage"] == 25.5
    assert entry["tenantId"] == "t1"

    stored = fake_db[TIMESHEETS].documents
    assert len(stored) == 1
    assert stored[0]["_id"] == entry["id"]


def test_create_sick_day(test_client, fake_db):
    response = test_client.post("/api/timesheets", json={
        "employeeId": "e1", "date": "2024-05-02", "leaveType": "Sick", "description": "flu",
    })

    assert response.status_code == 201
    entry = response.json()["data"]
    assert entry["clientId"] is None
    assert entry["projectId"] is None
    assert entry["totalHours"] == 0


def test_validation_error_body(test_client, fake_db):
    response = create(test_client, endTime="09:00")

    assert response.status_code == 400
    assert response.json() == {"message": "start time must precede end time", "code": "validation_error"}
    assert fake_db[TIMESHEETS].documents == []


def test_unknown_references(test_client):
    response = create(test_client, employeeId="e9")
    assert response.status_code == 404
    assert response.json()["message"] == "employee not found"

    response = create(test_client, clientId="c9")
    assert response.status_code == 404
    assert response.json()["message"] == "client not found"


def test_employee_limited_to_own_timesheets(client_for, employee):
    client = client_for(employee)

    assert create(client).status_code == 201
    response = create(client, employeeId="e2")
    assert response.status_code == 403
    assert response.json()["code"] == "authorization_error"


def test_update_keeps_wage_snapshot(test_client, fake_db):
    """Test edits recompute hours but keep the wage taken at creation"""
    entry = create(test_client).json()["data"]
    fake_db[EMPLOYEES].documents[0]["wage"] = 40

    response = test_client.put(f"/api/timesheets/{entry['id']}", json={
        **TEST_TIMESHEET, "endTime": "13:00", "lunchBreak": "No",
    })

    assert response.status_code == 200
    updated = response.json()["timesheet"]
    assert updated["totalHours"] == 4.0
    assert updated["hourlyWage"] == 25.5


def test_update_cannot_move_date(test_client):
    entry = create(test_client).json()["data"]

    response = test_client.put(f"/api/timesheets/{entry['id']}", json={**TEST_TIMESHEET, "date": "2024-05-03"})

    assert response.status_code == 400
    assert response.json()["message"] == "employee and date cannot be changed"


def test_delete_requires_employer(client_for, employer, employee, fake_db):
    entry = create(client_for(employer)).json()["data"]

    response = client_for(employee).delete(f"/api/timesheets/{entry['id']}")
    assert response.status_code == 403

    response = client_for(employer).delete(f"/api/timesheets/{entry['id']}")
    assert response.status_code == 200
    assert fake_db[TIMESHEETS].documents == []

    response = client_for(employer).get(f"/api/timesheets/{entry['id']}")
    assert response.status_code == 404


def test_other_tenant_cannot_read(client_for, employer, other_employer):
    entry = create(client_for(employer)).json()["data"]

    response = client_for(other_employer).get(f"/api/timesheets/{entry['id']}")

    assert response.status_code == 403


def test_list_with_totals(test_client):
    create(test_client)
    create(test_client, date="2024-05-02", endTime="13:00", lunchBreak="No")
    create(test_client, employeeId="e2", date="2024-05-02")
    create(test_client, date="2024-06-01")

    response = test_client.get("/api/timesheets", params={
        "employeeIds": "e1", "startDate": "2024-05-01", "endDate": "2024-05-31",
    })

    assert response.status_code == 200
    data = response.json()
    assert [entry["date"] for entry in data["timesheets"]] == ["2024-05-01", "2024-05-02"]
    assert data["totalHours"] == 12.0
    assert data["avgHours"] == 6.0



def test_list_orders_same_day_by_local_start(test_client):
    """Test Auckland entries list by local start even though UTC wraps past midnight"""
    create(test_client, startTime="13:00", endTime="15:00", lunchBreak="No", timezone="Pacific/Auckland")
    create(test_client, startTime="09:00", endTime="11:00", lunchBreak="No", timezone="Pacific/Auckland")

    data = test_client.get("/api/timesheets").json()

    assert [entry["startTime"] for entry in data["timesheets"]] == ["21:00", "01:00"]

def test_list_rejects_inverted_range(test_client):
    response = test_client.get("/api/timesheets", params={"startDate": "2024-05-31", "endDate": "2024-05-01"})

    assert response.status_code == 400
    assert response.json()["message"] == "start date must not be after end date"


def test_employee_list_only_shows_own(client_for, employer, employee):
    create(client_for(employer))
    create(client_for(employer), employeeId="e2")

    data = client_for(employee).get("/api/timesheets").json()

    assert [entry["employeeId"] for entry in data["timesheets"]] == ["e1"]


def test_check_timesheet(test_client):
    assert test_client.get("/api/timesheets/check", params={"employee": "e1", "date": "2024-05-01"}).json() == {
        "exists": False, "timesheet": None,
    }
    create(test_client)

    data = test_client.get("/api/timesheets/check", params={"employee": "e1", "date": "2024-05-01"}).json()

    assert data["exists"] is True
    assert data["timesheet"]["employeeId"] == "e1"


def test_request_body_errors_use_error_shape(test_client):
    response = test_client.post("/api/timesheets", json=["not", "an", "object"])

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"
