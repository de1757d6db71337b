"""
HTTP adapter tests (FastAPI TestClient over the in-memory store).
"""

from __future__ import annotations

from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from api.main import app
from fake_supabase import carrier_row, sale_row

USER_ID = "00000000-0000-0000-0000-0000000000aa"
HEADERS = {"X-User-Id": USER_ID, "X-User-Name": "Ana Supervisora"}


@pytest.fixture
def client(fake_store) -> TestClient:
    return TestClient(app)


def _seed_pair(store):
    sale = sale_row()
    carrier = carrier_row()
    store.seed("vendas_internas", sale)
    store.seed("linha_operadora", carrier)
    return sale["id"], carrier["id"]


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_commission_period(client) -> None:
    response = client.get("/api/v1/periods/commission")

    assert response.status_code == 200
    body = response.json()
    assert body["start"].endswith("-01")
    assert body["payment_date"].endswith("-15")


def test_custom_period_requires_bounds(client) -> None:
    assert client.get("/api/v1/periods/custom").status_code == 400

    response = client.get("/api/v1/periods/custom", params={"start": "2024-02-01", "end": "2024-02-10"})
    assert response.status_code == 200
    assert response.json()["end"] == "2024-02-10"


def test_unknown_period_preset(client) -> None:
    assert client.get("/api/v1/periods/fortnight").status_code == 400


def test_candidate_search(client, fake_store) -> None:
    _seed_pair(fake_store)

    response = client.get(
        "/api/v1/reconciliation/candidates",
        params={"anchor_type": "sale", "anchor_id": str(uuid4()), "q": "Maria"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total_count"] == 1
    assert body["items"][0]["record_type"] == "carrier"


def test_create_link_then_conflict(client, fake_store) -> None:
    sale_id, carrier_id = _seed_pair(fake_store)
    payload = {"sale_id": sale_id, "carrier_record_id": carrier_id, "note": "manual"}

    first = client.post("/api/v1/reconciliation/links", json=payload, headers=HEADERS)
    second = client.post("/api/v1/reconciliation/links", json=payload, headers=HEADERS)

    assert first.status_code == 201
    assert first.json()["link"]["validated_by"] == USER_ID
    assert first.json()["audit_recorded"] is True
    assert second.status_code == 409


def test_create_link_for_missing_sale(client, fake_store) -> None:
    _, carrier_id = _seed_pair(fake_store)

    response = client.post(
        "/api/v1/reconciliation/links",
        json={"sale_id": str(uuid4()), "carrier_record_id": carrier_id},
        headers=HEADERS,
    )

    assert response.status_code == 404


def test_invalid_user_header(client, fake_store) -> None:
    sale_id, carrier_id = _seed_pair(fake_store)

    response = client.post(
        "/api/v1/reconciliation/links",
        json={"sale_id": sale_id, "carrier_record_id": carrier_id},
        headers={"X-User-Id": "not-a-uuid"},
    )

    assert response.status_code == 400


def test_store_failure_maps_to_502(client, fake_store) -> None:
    sale_id, carrier_id = _seed_pair(fake_store)
    fake_store.fail("conciliacoes", "insert")

    response = client.post(
        "/api/v1/reconciliation/links",
        json={"sale_id": sale_id, "carrier_record_id": carrier_id},
        headers=HEADERS,
    )

    assert response.status_code == 502


def test_remove_link_and_read_audit_trail(client, fake_store) -> None:
    sale_id, carrier_id = _seed_pair(fake_store)
    created = client.post(
        "/api/v1/reconciliation/links",
        json={"sale_id": sale_id, "carrier_record_id": carrier_id},
        headers=HEADERS,
    ).json()

    removed = client.delete(
        f"/api/v1/reconciliation/links/{created['link']['link_id']}",
        params={"new_status": "divergente", "reason": "linha errada"},
        headers=HEADERS,
    )
    assert removed.status_code == 200
    assert removed.json()["link"]["status"] == "divergente"

    links = client.get(f"/api/v1/sales/{sale_id}/links").json()
    assert links["total_count"] == 1

    trail = client.get(f"/api/v1/sales/{sale_id}/audit", params={"page_size": 1}).json()
    assert trail["total"] == 2
    assert trail["page_count"] == 2
    assert trail["items"][0]["action"] == "DESCONCILIAR"
    assert trail["items"][0]["prior_display"] == "conciliado"
    assert trail["items"][0]["user_name"] == "Ana Supervisora"

    filtered = client.get(f"/api/v1/sales/{sale_id}/audit", params={"action": "CONCILIAR"}).json()
    assert filtered["total"] == 1
    assert filtered["items"][0]["new_value"]["linha_operadora_id"] == carrier_id


def test_audit_trail_page_past_end(client) -> None:
    response = client.get(f"/api/v1/sales/{uuid4()}/audit", params={"page": 5})

    assert response.status_code == 200
    assert response.json()["items"] == []
    assert response.json()["total"] == 0


def test_audit_trail_rejects_unknown_action(client) -> None:
    response = client.get(f"/api/v1/sales/{uuid4()}/audit", params={"action": "APAGAR"})

    assert response.status_code == 400


def test_change_status(client, fake_store) -> None:
    row = sale_row(status_interno="nova")
    fake_store.seed("vendas_internas", row)

    ok = client.post(f"/api/v1/sales/{row['id']}/status", json={"status": "enviada"}, headers=HEADERS)
    illegal = client.post(f"/api/v1/sales/{row['id']}/status", json={"status": "nova"}, headers=HEADERS)

    assert ok.status_code == 200
    assert ok.json() == {
        "sale_id": str(UUID(row["id"])),
        "previous": "nova",
        "current": "enviada",
        "audit_recorded": True,
    }
    assert illegal.status_code == 400


def test_invalid_sale_id(client) -> None:
    assert client.get("/api/v1/sales/not-a-uuid/links").status_code == 400
