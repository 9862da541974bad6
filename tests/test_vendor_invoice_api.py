from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from bendrija.core.db import SessionLocal
from bendrija.core.llm import UpstreamRateLimited
from bendrija.core.security import create_access_token
from bendrija.modules.identity.models import UserRole
from bendrija.modules.identity.service import create_user
from bendrija.modules.vendors import service as vendor_service
from bendrija.modules.vendors.models import RecognitionPattern
from bendrija.modules.vendors.recognition import PatternRepository


@pytest.fixture
def client():
    from bendrija.main import create_app

    with TestClient(create_app()) as c:
        yield c


def _headers(role: UserRole = UserRole.ADMIN, email: str = "admin@example.com") -> dict[str, str]:
    with SessionLocal() as session:
        user = create_user(session, email=email, password="pw", role=role)
        token = create_access_token(subject=str(user.id))
    return {"Authorization": f"Bearer {token}"}


def _seed_pattern(vendor_name: str, *, count: int, vendor_id: str, category_id: str) -> None:
    with SessionLocal() as session:
        pattern, _ = PatternRepository(session).upsert(
            vendor_name=vendor_name, vendor_id=vendor_id, cost_category_id=category_id
        )
        pattern.recognition_count = count
        session.commit()


def _enable_analyzer(monkeypatch, fn) -> None:
    monkeypatch.setattr(vendor_service, "invoice_ai_available", lambda: True)
    monkeypatch.setattr(vendor_service, "analyze_invoice_with_ai", fn)


def test_analyze_requires_admin(client):
    body = {"fileName": "a.pdf"}
    assert client.post("/api/vendor-invoices/analyze", json=body).status_code == 401
    headers = _headers(UserRole.RESIDENT, email="resident@example.com")
    resp = client.post("/api/vendor-invoices/analyze", json=body, headers=headers)
    assert resp.status_code == 403


def test_recurring_vendor_from_file_name(client):
    _seed_pattern('UAB "Prologika"', count=3, vendor_id="v-7", category_id="c-3")

    resp = client.post(
        "/api/vendor-invoices/analyze",
        json={"fileName": "UAB_Prologika_saskaita_2024.pdf"},
        headers=_headers(),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["is_recurring"] is True
    assert body["suggested_vendor_id"] == "v-7"
    assert body["suggested_category_id"] == "c-3"
    assert body["pattern_match"] == {"vendor_id": "v-7", "cost_category_id": "c-3"}
    with SessionLocal() as session:
        pattern = session.query(RecognitionPattern).one()
        assert pattern.recognition_count == 4


def test_file_name_fallbacks_without_analyzer(client):
    resp = client.post(
        "/api/vendor-invoices/analyze",
        json={
            "fileName": "Ignitis_Energija_SF-123456.pdf",
            "vendors": [{"id": "v-1", "name": "AB Ignitis"}],
        },
        headers=_headers(),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["vendor_name"] == "Ignitis Energija"
    assert body["invoice_number"] == "SF-123456"
    assert body["suggested_vendor_id"] == "v-1"
    assert body["description"] == "Sąskaita: Ignitis_Energija_SF-123456.pdf"
    assert body["confidence"] == 0.5
    assert body["is_recurring"] is False
    assert body["pattern_match"] is None


def test_date_and_amount_from_file_name(client):
    resp = client.post(
        "/api/vendor-invoices/analyze",
        json={"fileName": "saskaita_20250115_45.20.pdf"},
        headers=_headers(),
    )
    body = resp.json()
    assert body["invoice_date"] == "2025-01-15"
    assert body["total_amount"] == 45.2


def test_upstream_failure_is_absorbed(client, monkeypatch):
    def _raise(**kwargs):
        raise UpstreamRateLimited(upstream_status=429)

    _enable_analyzer(monkeypatch, _raise)
    resp = client.post(
        "/api/vendor-invoices/analyze", json={"fileName": "Telia_2025.pdf"}, headers=_headers()
    )
    assert resp.status_code == 200
    assert resp.json()["confidence"] == 0.5


def test_analyzer_answer_drives_vendor_and_category(client, monkeypatch):
    _seed_pattern("Vilniaus vandenys", count=2, vendor_id="v-water", category_id="c-util")

    def _answer(**kwargs):
        assert kwargs["file_name"] == "scan_0001.pdf"
        return {
            "vendor_name": 'UAB "Vilniaus vandenys"',
            "vendor_company_code": "120546422",
            "invoice_number": "VV-991",
            "invoice_date": "2025-02-01",
            "due_date": "2025-02-15",
            "total_amount": "118,40",
            "suggested_category": "Komunaliniai",
            "confidence": 0.92,
        }

    _enable_analyzer(monkeypatch, _answer)
    resp = client.post(
        "/api/vendor-invoices/analyze",
        json={
            "fileName": "scan_0001.pdf",
            "fileType": "application/pdf",
            "categories": [{"id": "c-other", "name": "Komunaliniai paslaugos"}],
        },
        headers=_headers(),
    )

    body = resp.json()
    assert body["vendor_name"] == 'UAB "Vilniaus vandenys"'
    assert body["is_recurring"] is True
    assert body["suggested_vendor_id"] == "v-water"
    assert body["suggested_category_id"] == "c-util"
    assert body["invoice_number"] == "VV-991"
    assert body["due_date"] == "2025-02-15"
    assert body["total_amount"] == 118.4
    assert body["confidence"] == 0.92


def test_category_suggestion_without_pattern(client, monkeypatch):
    _enable_analyzer(
        monkeypatch,
        lambda **kwargs: {"vendor_name": "Naujas tiekėjas", "suggested_category": "remontas"},
    )
    resp = client.post(
        "/api/vendor-invoices/analyze",
        json={
            "fileName": "x.pdf",
            "categories": [{"id": "c-1", "name": "Valymas"}, {"id": "c-2", "name": "Remontas"}],
        },
        headers=_headers(),
    )
    body = resp.json()
    assert body["suggested_category_id"] == "c-2"
    assert body["is_recurring"] is False


def test_confirm_pattern_creates_then_refreshes(client):
    headers = _headers()
    payload = {"vendor_name": 'UAB "Prologika"', "vendor_id": "v-1", "cost_category_id": "c-1"}

    created = client.post("/api/vendor-invoices/patterns", json=payload, headers=headers)
    assert created.status_code == 201
    assert created.json()["recognition_count"] == 1
    assert created.json()["significant_token"] == "prologika"

    payload["cost_category_id"] = "c-2"
    again = client.post("/api/vendor-invoices/patterns", json=payload, headers=headers)
    assert again.status_code == 200
    assert again.json()["id"] == created.json()["id"]
    assert again.json()["cost_category_id"] == "c-2"

    listed = client.get("/api/vendor-invoices/patterns", headers=headers).json()
    assert len(listed) == 1
