from fastapi.testclient import TestClient

from auctionpay.main import app

client = TestClient(app)


def test_healthcheck() -> None:
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readiness() -> None:
    response = client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


def test_request_id_header() -> None:
    response = client.get("/api/v1/health")
    assert response.headers.get("X-Request-ID")


def test_request_id_is_propagated() -> None:
    response = client.get("/api/v1/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


def test_http_error_shape() -> None:
    res = client.get("/api/v1/does-not-exist")
    assert res.status_code == 404
    body = res.json()
    assert set(body.keys()) == {"detail", "code"}
    assert body["detail"] == "Not Found"


def test_request_id_is_returned_for_calculations() -> None:
    res = client.post(
        "/api/v1/calculations/preview",
        json={"items": [{"lot_id": "L1", "title": "Lot", "quantity": 1, "unit_price": "10"}], "tax_rate": "0.1"},
        headers={"X-Request-ID": "shape-1"},
    )
    assert res.status_code == 200
    assert res.headers["X-Request-ID"] == "shape-1"
