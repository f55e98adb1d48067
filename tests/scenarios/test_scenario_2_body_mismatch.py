"""Scenario 2: Body Mismatch Conformance Tests

This module tests request body verification through the ASGI middleware:
- Same key with a different body -> 422 Unprocessable Entity
- Same key with the same JSON in a different key order -> replay
- Routes without body verification ignore body changes
- The original cached response survives a mismatch
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from idempotency_coordinator.adapters.asgi import ASGIIdempotencyMiddleware
from idempotency_coordinator.core.coordinator import IdempotencyCoordinator
from idempotency_coordinator.models import IdempotencyOptions
from idempotency_coordinator.storage.memory import MemoryResultStore


class PaymentRequest(BaseModel):
    """Payment request model for testing."""

    amount: int
    currency: str = "USD"


@pytest.fixture
def counter() -> dict[str, int]:
    return {"count": 0}


@pytest.fixture
def client(counter: dict[str, int]) -> TestClient:
    app = FastAPI()
    coordinator = IdempotencyCoordinator(MemoryResultStore())

    app.add_middleware(
        ASGIIdempotencyMiddleware,
        coordinator=coordinator,
        routes={
            ("POST", "/api/payments"): IdempotencyOptions(key_prefix="payments", include_body=True),
            ("POST", "/api/transfers"): IdempotencyOptions(key_prefix="transfers"),
        },
    )

    @app.post("/api/payments")
    async def create_payment(payment: PaymentRequest):
        counter["count"] += 1
        return {"id": counter["count"], "amount": payment.amount, "currency": payment.currency}

    @app.post("/api/transfers")
    async def create_transfer(payment: PaymentRequest):
        counter["count"] += 1
        return {"id": counter["count"], "amount": payment.amount}

    return TestClient(app)


def test_different_body_is_rejected(client: TestClient, counter: dict[str, int]) -> None:
    first = client.post("/api/payments", json={"amount": 100}, headers={"Idempotency-Key": "k1"})
    second = client.post("/api/payments", json={"amount": 200}, headers={"Idempotency-Key": "k1"})

    assert first.status_code == 200
    assert second.status_code == 422
    assert "k1" in second.json()["message"]
    assert counter["count"] == 1


def test_original_response_still_replayed_after_mismatch(
    client: TestClient, counter: dict[str, int]
) -> None:
    first = client.post("/api/payments", json={"amount": 100}, headers={"Idempotency-Key": "k2"})
    client.post("/api/payments", json={"amount": 999}, headers={"Idempotency-Key": "k2"})
    third = client.post("/api/payments", json={"amount": 100}, headers={"Idempotency-Key": "k2"})

    assert third.status_code == 200
    assert third.content == first.content
    assert third.headers["Idempotent-Replayed"] == "true"
    assert counter["count"] == 1


def test_json_key_order_does_not_matter(client: TestClient, counter: dict[str, int]) -> None:
    client.post(
        "/api/payments",
        content=b'{"amount": 100, "currency": "EUR"}',
        headers={"Idempotency-Key": "k3", "content-type": "application/json"},
    )
    response = client.post(
        "/api/payments",
        content=b'{"currency":"EUR","amount":100}',
        headers={"Idempotency-Key": "k3", "content-type": "application/json"},
    )

    assert response.status_code == 200
    assert response.headers["Idempotent-Replayed"] == "true"
    assert counter["count"] == 1


def test_body_not_checked_without_include_body(client: TestClient, counter: dict[str, int]) -> None:
    first = client.post("/api/transfers", json={"amount": 100}, headers={"Idempotency-Key": "t1"})
    second = client.post("/api/transfers", json={"amount": 200}, headers={"Idempotency-Key": "t1"})

    assert second.status_code == 200
    assert second.json() == first.json()
    assert counter["count"] == 1


def test_same_key_different_routes_are_independent(
    client: TestClient, counter: dict[str, int]
) -> None:
    client.post("/api/payments", json={"amount": 100}, headers={"Idempotency-Key": "shared"})
    response = client.post("/api/transfers", json={"amount": 100}, headers={"Idempotency-Key": "shared"})

    assert response.status_code == 200
    assert response.headers.get("Idempotent-Replayed") is None
    assert counter["count"] == 2
