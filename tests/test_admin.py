from report_portal.models.models import Report
from report_portal.models.report import ReportStatus


def submit(client, location="Main St", issue_type="pothole"):
    response = client.post("/api/reports", data={"location": location, "issue_type": issue_type})
    assert response.status_code == 200
    return response.json()["case_id"]


def report_id_for(db_session, case_id):
    return db_session.query(Report).filter(Report.case_id == case_id).first().id


# -------------------------------------------------------
# 🔐 Auth Tests
# -------------------------------------------------------

def test_login_success(client, admin):
    response = client.post(
        "/api/admin/login",
        json={"username": "officer1", "password": "correct horse"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["username"] == "officer1"
    assert data["role"] == "officer"
    assert "token" in data


def test_login_wrong_password(client, admin):
    response = client.post(
        "/api/admin/login",
        json={"username": "officer1", "password": "wrong"},
    )
    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid credentials"}


def test_login_unknown_user(client):
    response = client.post(
        "/api/admin/login",
        json={"username": "nobody", "password": "whatever"},
    )
    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid credentials"}


def test_admin_routes_require_token(client):
    assert client.get("/api/admin/reports").status_code == 401
    assert client.get("/api/admin/reports/1").status_code == 401
    assert client.post("/api/admin/reports/1/status", json={"status": "CLOSED"}).status_code == 401


def test_invalid_token(client):
    headers = {"Authorization": "Bearer invalidtoken"}
    response = client.get("/api/admin/reports", headers=headers)
    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid or expired token"}


# -------------------------------------------------------
# 📋 Triage Listing Tests
# -------------------------------------------------------

def test_list_reports_newest_first(client, admin_headers):
    first = submit(client, location="First St")
    second = submit(client, location="Second St")
    third = submit(client, location="Third St")

    response = client.get("/api/admin/reports", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert [r["case_id"] for r in data["reports"]] == [third, second, first]
    assert set(data["reports"][0]) == {"id", "case_id", "issue_type", "status", "created_at"}


def test_list_reports_paginates(client, admin_headers):
    case_ids = [submit(client, location=f"{n} Oak Ave") for n in range(5)]

    response = client.get("/api/admin/reports?limit=2&offset=1", headers=admin_headers)
    data = response.json()
    assert data["total"] == 5
    assert [r["case_id"] for r in data["reports"]] == [case_ids[3], case_ids[2]]


def test_get_report_shows_full_record(client, db_session, admin_headers):
    response = client.post(
        "/api/reports",
        data={"location": "Main St", "issue_type": "pothole", "email": "a@example.com"},
    )
    case_id = response.json()["case_id"]
    report_id = report_id_for(db_session, case_id)

    response = client.get(f"/api/admin/reports/{report_id}", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["case_id"] == case_id
    assert data["email"] == "a@example.com"
    assert data["status"] == "NEW"


def test_get_unknown_report(client, admin_headers):
    response = client.get("/api/admin/reports/999", headers=admin_headers)
    assert response.status_code == 404
    assert response.json() == {"detail": "Report not found"}


# -------------------------------------------------------
# 🔁 Status Update Tests
# -------------------------------------------------------

def test_update_status(client, db_session, admin_headers):
    case_id = submit(client)
    report_id = report_id_for(db_session, case_id)

    response = client.post(
        f"/api/admin/reports/{report_id}/status",
        json={"status": "UNDER_REVIEW"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "UNDER_REVIEW"

    tracked = client.get(f"/api/reports/{case_id}").json()
    assert tracked["status"] == "UNDER_REVIEW"


def test_update_status_is_permissive_by_default(client, db_session, admin_headers):
    case_id = submit(client)
    report_id = report_id_for(db_session, case_id)

    for value in ("CLOSED", "NEW", "ACTION_TAKEN"):
        response = client.post(
            f"/api/admin/reports/{report_id}/status",
            json={"status": value},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == value


def test_update_status_rejects_unknown_value(client, db_session, admin_headers):
    case_id = submit(client)
    report_id = report_id_for(db_session, case_id)

    bodies = [{"status": value} for value in ("DONE", "closed", "", None, 5, ["NEW"])] + [{}]
    for body in bodies:
        response = client.post(
            f"/api/admin/reports/{report_id}/status",
            json=body,
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid status value"}

    db_session.expire_all()
    report = db_session.query(Report).filter(Report.id == report_id).first()
    assert report.status == ReportStatus.NEW


def test_update_status_unknown_report(client, admin_headers):
    response = client.post(
        "/api/admin/reports/424242/status",
        json={"status": "VERIFIED"},
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert response.json() == {"detail": "Report not found"}
