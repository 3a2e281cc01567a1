"""Tests for the permission gate dependencies on a standalone route."""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from hostpanel.core.identity import CallerIdentity
from hostpanel.core.security import require_any_permission, require_permission
from hostpanel.db.session import get_db

gated_app = FastAPI()


@gated_app.get("/reports")
async def reports(
    caller: CallerIdentity = Depends(require_any_permission("settings.view", "tickets.view")),
):
    return {"user_id": caller.user_id}


@gated_app.get("/pricing-desk")
async def pricing_desk(caller: CallerIdentity = Depends(require_permission("pricing.edit"))):
    return {"user_id": caller.user_id}


@pytest.fixture
def gated_client(db):
    def override_get_db():
        yield db

    gated_app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(gated_app) as test_client:
            yield test_client
    finally:
        gated_app.dependency_overrides.clear()


def test_any_gate_passes_on_a_later_slug(gated_client, support_agent, auth_headers):
    response = gated_client.get("/reports", headers=auth_headers(support_agent))
    assert response.status_code == 200
    assert response.json() == {"user_id": support_agent.id}


def test_any_gate_denies_when_no_slug_is_held(gated_client, make_user, auth_headers):
    editor = make_user("editor@example.com", role_slug="content_editor")
    response = gated_client.get("/reports", headers=auth_headers(editor))
    assert response.status_code == 403
    assert response.json()["detail"] == "Permission denied"


def test_any_gate_passes_super_admin(gated_client, super_admin, auth_headers):
    assert gated_client.get("/reports", headers=auth_headers(super_admin)).status_code == 200


def test_any_gate_requires_authentication(gated_client):
    assert gated_client.get("/reports").status_code == 401


def test_single_gate_checks_exact_slug(gated_client, support_agent, make_user, auth_headers):
    billing = make_user("billing@example.com", role_slug="billing_manager")
    assert gated_client.get("/pricing-desk", headers=auth_headers(support_agent)).status_code == 403
    assert gated_client.get("/pricing-desk", headers=auth_headers(billing)).status_code == 200
