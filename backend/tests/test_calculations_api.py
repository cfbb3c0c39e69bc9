from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from auctionpay.core.config import settings
from auctionpay.main import app


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setattr(settings, "audit_log_enabled", False)
    test_client = TestClient(app)
    yield test_client
    test_client.close()


def _payload(**overrides):
    body = {
        "items": [{"lot_id": "L1", "title": "Oil painting", "quantity": 1, "unit_price": "100.00"}],
        "buyers_premium_rate": "0.10",
        "tax_rate": "0.085",
    }
    body.update(overrides)
    return body


def test_preview_returns_reconciled_totals(client: TestClient) -> None:
    res = client.post("/api/v1/calculations/preview", json=_payload())
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["subtotal"] == "100.00"
    assert body["buyers_premium_amount"] == "10.00"
    assert body["tax_amount"] == "9.35"
    assert body["grand_total"] == "119.35"
    assert body["currency"] == "USD"
    assert body["checksum"]
    assert body["breakdown"]["items"] == [
        {"lot_id": "L1", "title": "Oil painting", "quantity": 1, "unit_price": "100.00", "total_price": "100.00"}
    ]
    assert body["breakdown"]["buyers_premium"] == {"rate": "0.10", "amount": "10.00", "applied_tier": None}
    assert body["breakdown"]["tax"] == {"rate": "0.085", "taxable_amount": "110.00", "amount": "9.35"}


def test_preview_with_tiers(client: TestClient) -> None:
    tiers = [
        {"id": "t1", "name": "Base", "min_amount": "0", "max_amount": "1000", "rate": "0.25"},
        {"id": "t2", "name": "Mid", "min_amount": "1000", "rate": "0.20"},
    ]
    items = [{"lot_id": "L1", "title": "Clock", "quantity": 2, "unit_price": "750"}]
    res = client.post("/api/v1/calculations/preview", json=_payload(items=items, premium_tiers=tiers, tax_rate="0"))
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["buyers_premium_amount"] == "300.00"
    assert body["grand_total"] == "1800.00"
    assert body["breakdown"]["buyers_premium"]["applied_tier"]["id"] == "t2"


def test_preview_rejects_empty_items(client: TestClient) -> None:
    res = client.post("/api/v1/calculations/preview", json=_payload(items=[]))
    assert res.status_code == 400
    assert res.json() == {"detail": ["At least one item is required"], "code": "invalid_inputs"}


def test_preview_reports_every_invalid_field(client: TestClient) -> None:
    items = [{"lot_id": "L1", "title": "Lamp", "quantity": 0, "unit_price": "5"}]
    res = client.post("/api/v1/calculations/preview", json=_payload(items=items, tax_rate="1.5"))
    assert res.status_code == 400
    assert res.json()["detail"] == ["Item 1: quantity must be greater than 0", "Tax rate must be between 0 and 1"]


def test_preview_maps_engine_errors(client: TestClient) -> None:
    items = [{"lot_id": "L1", "title": "Free lot", "quantity": 2, "unit_price": "0"}]
    res = client.post("/api/v1/calculations/preview", json=_payload(items=items))
    assert res.status_code == 400
    assert res.json()["code"] == "zero_subtotal"


def test_preview_rejects_malformed_body(client: TestClient) -> None:
    res = client.post("/api/v1/calculations/preview", json={"items": [{"lot_id": "L1", "quantity": "many"}]})
    assert res.status_code == 422
    assert res.json()["code"] == "validation_error"


def test_preview_updates_metrics(client: TestClient) -> None:
    client.post("/api/v1/calculations/preview", json=_payload())
    client.post("/api/v1/calculations/preview", json=_payload(items=[]))
    snapshot = client.get("/api/v1/metrics").json()
    assert snapshot["calculations_performed"] == 1
    assert snapshot["calculations_failed"] == 1
    assert snapshot["calculations_failed.invalid_inputs"] == 1


def test_verify_round_trips_preview(client: TestClient) -> None:
    computed = client.post("/api/v1/calculations/preview", json=_payload()).json()
    res = client.post("/api/v1/calculations/verify", json=computed)
    assert res.status_code == 200
    assert res.json() == {"accurate": True, "error": None, "discrepancy": None, "checksum_valid": True}


def test_verify_detects_tampering(client: TestClient) -> None:
    computed = client.post("/api/v1/calculations/preview", json=_payload()).json()
    computed["grand_total"] = "129.35"
    res = client.post("/api/v1/calculations/verify", json=computed)
    body = res.json()
    assert body["accurate"] is False
    assert body["checksum_valid"] is False
    assert Decimal(body["discrepancy"]) == Decimal("10.00")
    assert client.get("/api/v1/metrics").json()["verification_failures"] == 1


def test_rates_overview(client: TestClient) -> None:
    body = client.get("/api/v1/calculations/rates").json()
    assert body["currency"] == "USD"
    assert body["default_rates"] == {"buyers_premium_rate": "0.10", "tax_rate": "0.085"}
    assert body["category_rates"]["art"]["buyers_premium_rate"] == "0.15"


def test_rates_for_category(client: TestClient) -> None:
    body = client.get("/api/v1/calculations/rates", params={"category": "Jewelry"}).json()
    assert body == {"category": "jewelry", "currency": "USD", "rates": {"buyers_premium_rate": "0.20", "tax_rate": "0.085"}}
    unknown = client.get("/api/v1/calculations/rates", params={"category": "stamps"}).json()
    assert unknown["rates"] == {"buyers_premium_rate": "0.10", "tax_rate": "0.085"}


def test_preview_rejects_amounts_beyond_precision(client: TestClient) -> None:
    items = [{"lot_id": "L1", "title": "Estate", "quantity": 1, "unit_price": "1e30"}]
    res = client.post("/api/v1/calculations/preview", json=_payload(items=items))
    assert res.status_code == 400
    assert res.json()["code"] == "amount_out_of_range"
    assert client.get("/api/v1/metrics").json()["calculations_failed.amount_out_of_range"] == 1
