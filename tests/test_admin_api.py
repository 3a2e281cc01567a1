"""Integration tests for audit log access and health checks."""

from sqlalchemy.exc import OperationalError


def test_audit_requires_settings_view(client, support_agent, auth_headers):
    response = client.get("/api/admin/audit", headers=auth_headers(support_agent))
    assert response.status_code == 403


def test_audit_lists_role_changes(client, super_admin, auth_headers):
    headers = auth_headers(super_admin)
    client.post("/api/roles", headers=headers, json={"name": "Reviewers"})
    client.post("/api/roles", headers=headers, json={"name": "Writers"})

    response = client.get("/api/admin/audit", params={"action": "role.created"}, headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert all(log["action"] == "role.created" for log in body["logs"])
    assert body["logs"][0]["actor_email"] == super_admin.email


def test_health_reports_database(client):
    response = client.get("/api/admin/health")
    assert response.status_code == 200
    body = response.json()
    assert body["database"] == "ok"
    assert body["redis"] == "unavailable"
    assert body["status"] == "healthy"


def test_liveness_touches_no_backing_service(client, db, monkeypatch):
    def unreachable(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception(2003, "Can't connect"))

    monkeypatch.setattr(db, "execute", unreachable)
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readiness_is_503_without_database(client, db, monkeypatch):
    def unreachable(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception(2003, "Can't connect"))

    monkeypatch.setattr(db, "execute", unreachable)
    response = client.get("/api/admin/health")
    assert response.status_code == 503
    assert response.json()["status"] == "degraded"
    assert response.json()["database"] == "error"
