"""Integration tests for custom VPS pricing settings and quotes."""

import json

import pytest

from hostpanel.models import AuditLog, SystemSetting
from hostpanel.services.pricing_service import PRICING_KEY, pricing_service


def test_get_pricing_creates_default_record(client, db):
    response = client.get("/api/settings/custom-vps-pricing")
    assert response.status_code == 200
    pricing = response.json()["pricing"]
    assert pricing["cpu_price_per_core"] == 3.0
    assert pricing["discount_3years"] == 20

    row = db.query(SystemSetting).filter(SystemSetting.key == PRICING_KEY).one()
    assert row.value_type == "json"
    assert json.loads(row.value)["ram_price_per_gb"] == 1.5


def test_quote_with_defaults(client):
    response = client.post("/api/pricing/custom-vps/quote", json={
        "cpu": 4, "ram": 8, "storage": 100, "bandwidth": 5, "backup_gb": 50,
        "billing_period": "1year",
    })
    assert response.status_code == 200
    quote = response.json()
    assert quote["monthly_base"] == 36.5
    assert quote["monthly_effective"] == 32.85
    assert quote["total_for_term"] == 394.2
    assert quote["term_months"] == 12
    assert quote["datacenter"]["id"] == "germany"


def test_invalid_quote_lists_every_field(client):
    response = client.post("/api/pricing/custom-vps/quote", json={
        "cpu": 64, "ram": 0, "storage": 85, "datacenter": "atlantis",
    })
    assert response.status_code == 400
    body = response.json()
    assert body["detail"] == "Invalid VPS configuration"
    assert set(body["errors"]) == {"cpu", "ram", "storage", "datacenter"}


def test_unknown_billing_period_is_422(client):
    response = client.post("/api/pricing/custom-vps/quote", json={"billing_period": "weekly"})
    assert response.status_code == 422


def test_save_requires_pricing_edit(client, support_agent, auth_headers):
    response = client.put(
        "/api/settings/custom-vps-pricing",
        headers=auth_headers(support_agent),
        json={"cpu_price_per_core": 0.5},
    )
    assert response.status_code == 403


def test_save_requires_authentication(client):
    response = client.put("/api/settings/custom-vps-pricing", json={"cpu_price_per_core": 0.5})
    assert response.status_code == 401


def test_saved_rates_price_later_quotes(client, db, make_user, auth_headers):
    billing = make_user("billing@example.com", role_slug="billing_manager")
    response = client.put(
        "/api/settings/custom-vps-pricing",
        headers=auth_headers(billing),
        json={"cpu_price_per_core": 5.0, "discount_1year": 25},
    )
    assert response.status_code == 200

    pricing = client.get("/api/settings/custom-vps-pricing").json()["pricing"]
    assert pricing["cpu_price_per_core"] == 5.0
    assert pricing["ram_price_per_gb"] == 1.5

    quote = client.post("/api/pricing/custom-vps/quote", json={
        "cpu": 4, "ram": 8, "storage": 100, "bandwidth": 5, "backup_gb": 50,
        "billing_period": "1year",
    }).json()
    assert quote["monthly_base"] == pytest.approx(44.5)
    assert quote["monthly_effective"] == pytest.approx(33.38, abs=0.01)

    entry = db.query(AuditLog).filter(AuditLog.action == "pricing.updated").one()
    assert entry.actor_id == billing.id
    assert entry.resource_id == PRICING_KEY


def test_unreadable_record_prices_with_defaults(db):
    db.add(SystemSetting(key=PRICING_KEY, value="{not json", value_type="json", category="pricing"))
    db.commit()
    assert pricing_service.get_pricing(db).cpu_price_per_core == 3.0
