"""
Tests for the HTTP surface: response envelopes, error mapping and health.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.api import deps
from app.core.circuit_breaker import CircuitBreakerRegistry
from app.core.guarded_service import GuardedService
from app.core.service_errors import PriceServiceError
from app.main import app
from app.services.container import ServiceContainer

ADDRESS = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"
TX_HASH = "0x" + "ab" * 32


class FakePriceService:
    def __init__(self):
        self.failing = False
        self.calls = 0

    async def get_price(self, symbol: str) -> float:
        self.calls += 1
        if self.failing:
            raise PriceServiceError("Price service failed: upstream unavailable")
        return {"ETH": 3000000.0, "BTC": 100000000.0}.get(symbol, 1600.0)


class FakeBlockchain:
    required_confirmations = 3

    def __init__(self):
        self.calls = []

    async def get_balance(self, address: str) -> str:
        self.calls.append(address)
        return "1.5"

    async def verify_transaction(self, tx_hash: str) -> bool:
        self.calls.append(tx_hash)
        return True


class FakePayments:
    async def get_banks(self):
        return [{"name": "Access Bank", "code": "044"}]

    async def verify_payment(self, reference: str):
        raise RuntimeError("unexpected payload")


@pytest.fixture
def fakes():
    prices = GuardedService(FakePriceService()).guard("get_price")
    blockchain = GuardedService(FakeBlockchain()).guard("get_balance").guard("verify_transaction")
    payments = GuardedService(FakePayments()).guard("get_banks").guard("verify_payment")

    app.dependency_overrides[deps.get_prices] = lambda: prices
    app.dependency_overrides[deps.get_blockchain] = lambda: blockchain
    app.dependency_overrides[deps.get_payments] = lambda: payments
    yield {"prices": prices, "blockchain": blockchain, "payments": payments}
    app.dependency_overrides.clear()


@pytest.fixture
def client(fakes):
    # Lifespan is not entered; services come from dependency overrides
    return TestClient(app, raise_server_exceptions=False)


class TestPriceRoutes:
    """Tests for /prices endpoints."""

    def test_get_price(self, client):
        response = client.get("/api/v1/prices/eth")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "status": "success",
            "message": "Price fetched",
            "data": {"symbol": "ETH", "price_ngn": 3000000.0},
        }

    def test_to_naira(self, client):
        response = client.get("/api/v1/prices/ETH/to-naira", params={"amount": "2"})

        assert response.status_code == 200
        assert response.json()["data"]["result"] == "6,000,000.00"

    def test_from_naira(self, client):
        response = client.get("/api/v1/prices/BTC/from-naira", params={"amount": "150000"})

        assert response.status_code == 200
        assert response.json()["data"]["result"] == "0.00150000"

    def test_unsupported_symbol_is_bad_request(self, client, fakes):
        response = client.get("/api/v1/prices/doge")

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["status"] == "error"
        assert body["kind"] == "price"
        assert fakes["prices"].wrapped.calls == 0

    def test_invalid_amount_is_bad_request(self, client, fakes):
        response = client.get("/api/v1/prices/eth/from-naira", params={"amount": "abc"})

        assert response.status_code == 400
        assert fakes["prices"].breaker("get_price").failure_count == 0


class TestErrorMapping:
    """Tests for ServiceError, CircuitOpenError and unexpected errors."""

    def test_service_error_then_open_circuit(self, client, fakes):
        fakes["prices"].wrapped.failing = True

        for _ in range(3):
            response = client.get("/api/v1/prices/eth")
            assert response.status_code == 500
            assert response.json()["message"] == "Price service failed: upstream unavailable"
            assert response.json()["kind"] == "price"

        response = client.get("/api/v1/prices/eth")

        assert response.status_code == 503
        assert response.json() == {
            "success": False,
            "status": "error",
            "message": "Circuit breaker is open for get_price",
            "kind": "circuit_open",
        }
        assert fakes["prices"].wrapped.calls == 3

    def test_unexpected_error_is_captured(self, client):
        with patch("app.main.capture_exception") as mock_capture:
            response = client.get("/api/v1/payments/KPY-123/verify")

        assert response.status_code == 500
        assert response.json()["message"] == "Something went wrong"
        assert response.json()["kind"] == "internal"
        mock_capture.assert_called_once()
        assert isinstance(mock_capture.call_args[0][0], RuntimeError)


class TestWalletRoutes:
    """Tests for wallet and transaction endpoints."""

    def test_balance(self, client):
        response = client.get(f"/api/v1/wallets/{ADDRESS}/balance")

        assert response.status_code == 200
        assert response.json()["data"]["balance"] == "1.5"
        assert response.json()["data"]["address"] == ADDRESS

    def test_invalid_address_does_not_reach_the_service(self, client, fakes):
        response = client.get("/api/v1/wallets/0x123/balance")

        assert response.status_code == 400
        assert response.json()["kind"] == "blockchain"
        assert fakes["blockchain"].wrapped.calls == []
        assert fakes["blockchain"].breaker("get_balance").failure_count == 0

    def test_verify_transaction(self, client):
        response = client.get(f"/api/v1/transactions/{TX_HASH}/verify")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Transaction confirmed"
        assert body["data"] == {"tx_hash": TX_HASH, "confirmed": True, "required_confirmations": 3}


class TestPaymentRoutes:
    """Tests for payment endpoints."""

    def test_banks(self, client):
        response = client.get("/api/v1/payments/banks")

        assert response.status_code == 200
        assert response.json()["data"] == [{"name": "Access Bank", "code": "044"}]


class TestRequestContext:
    """Tests for request id propagation."""

    def test_generates_request_id(self, client):
        response = client.get("/health")

        assert response.headers["X-Request-ID"].startswith("req_")

    def test_echoes_safe_ids(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc-123", "X-Correlation-ID": "flow_9"})

        assert response.headers["X-Request-ID"] == "abc-123"
        assert response.headers["X-Correlation-ID"] == "flow_9"

    def test_replaces_unsafe_ids(self, client):
        response = client.get("/health", headers={"X-Request-ID": "bad id;DROP TABLE"})

        assert response.headers["X-Request-ID"] != "bad id;DROP TABLE"


class TestHealth:
    """Tests for health endpoints."""

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_circuits_ok(self, client):
        body = client.get("/health/circuits").json()

        assert body["status"] == "ok"
        assert body["total_circuits"] == 5
        assert body["open_circuits"] == []

    def test_circuits_critical_when_open(self, client, fakes):
        fakes["prices"].wrapped.failing = True
        for _ in range(3):
            client.get("/api/v1/prices/eth")

        body = client.get("/health/circuits").json()

        assert body["status"] == "critical"
        assert body["open_circuits"] == ["FakePriceService.get_price"]


class TestLifespan:
    """Tests for application startup and shutdown."""

    def test_startup_builds_guarded_services(self):
        with TestClient(app) as client:
            services = app.state.services
            assert isinstance(services, ServiceContainer)
            assert services.prices.guarded_methods == ["get_price"]
            assert services.blockchain.guarded_methods == ["get_balance", "get_block_number", "verify_transaction"]
            assert services.payments.guarded_methods == ["get_banks", "verify_payment"]

            body = client.get("/health/circuits").json()
            assert body["total_circuits"] == 6

        assert app.state.services is None
        assert CircuitBreakerRegistry.get("PriceService.get_price") is not None
