"""Scenario 1: Happy Path Conformance Tests

This module tests the basic idempotency flow through the ASGI middleware:
- First request with a key executes the handler and caches the response
- Retries with the same key replay the cached response byte-for-byte
- Replayed responses carry the Idempotent-Replayed header
- Requests to unprotected routes and safe methods bypass the coordinator
- Non-2xx responses are returned but not cached
- Repeated response headers such as Set-Cookie are passed through intact
"""

import pytest
from fastapi import FastAPI, HTTPException, Response
from fastapi.testclient import TestClient
from pydantic import BaseModel

from idempotency_coordinator.adapters.asgi import ASGIIdempotencyMiddleware
from idempotency_coordinator.core.coordinator import IdempotencyCoordinator
from idempotency_coordinator.models import IdempotencyOptions
from idempotency_coordinator.storage.memory import MemoryResultStore


class OrderRequest(BaseModel):
    """Order request model for testing."""

    item: str
    quantity: int = 1


@pytest.fixture
def counters() -> dict[str, int]:
    return {"orders": 0, "errors": 0, "notes": 0, "sessions": 0}


@pytest.fixture
def app(counters: dict[str, int]) -> FastAPI:
    """Create a FastAPI app with idempotency middleware."""
    test_app = FastAPI()
    coordinator = IdempotencyCoordinator(MemoryResultStore())

    test_app.add_middleware(
        ASGIIdempotencyMiddleware,
        coordinator=coordinator,
        routes={
            ("POST", "/api/orders"): IdempotencyOptions(key_prefix="orders"),
            ("POST", "/api/errors"): IdempotencyOptions(key_prefix="errors"),
            ("POST", "/api/notes"): IdempotencyOptions(key_prefix="notes", mandatory=False),
            ("POST", "/api/sessions"): IdempotencyOptions(key_prefix="sessions"),
        },
    )

    @test_app.post("/api/orders", status_code=201)
    async def create_order(order: OrderRequest):
        counters["orders"] += 1
        return {"id": counters["orders"], "item": order.item, "quantity": order.quantity}

    @test_app.post("/api/errors")
    async def failing_endpoint(order: OrderRequest):
        counters["errors"] += 1
        raise HTTPException(status_code=400, detail="error")

    @test_app.post("/api/notes")
    async def create_note():
        counters["notes"] += 1
        return {"note": counters["notes"]}

    @test_app.post("/api/sessions", status_code=201)
    async def create_session(response: Response):
        counters["sessions"] += 1
        response.set_cookie("session", "abc")
        response.set_cookie("csrf", "xyz")
        return {"session": counters["sessions"]}

    @test_app.get("/api/orders")
    async def list_orders():
        return {"count": counters["orders"]}

    return test_app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def test_first_request_executes(client: TestClient, counters: dict[str, int]) -> None:
    response = client.post(
        "/api/orders",
        json={"item": "widget"},
        headers={"Idempotency-Key": "k1"},
    )

    assert response.status_code == 201
    assert response.json() == {"id": 1, "item": "widget", "quantity": 1}
    assert response.headers.get("Idempotent-Replayed") is None
    assert counters["orders"] == 1


def test_retry_replays_cached_response(client: TestClient, counters: dict[str, int]) -> None:
    """Same key, same body: the original (201, {"id":1}) comes back without re-execution."""
    first = client.post("/api/orders", json={"item": "widget"}, headers={"Idempotency-Key": "k1"})
    second = client.post("/api/orders", json={"item": "widget"}, headers={"Idempotency-Key": "k1"})

    assert second.status_code == 201
    assert second.content == first.content
    assert second.json()["id"] == 1
    assert second.headers["Idempotent-Replayed"] == "true"
    assert second.headers["content-type"] == "application/json"
    assert counters["orders"] == 1


def test_many_retries_are_identical(client: TestClient, counters: dict[str, int]) -> None:
    responses = [
        client.post("/api/orders", json={"item": "gadget"}, headers={"Idempotency-Key": "k-many"})
        for _ in range(5)
    ]

    assert {r.content for r in responses} == {responses[0].content}
    assert counters["orders"] == 1


def test_different_keys_execute_separately(client: TestClient, counters: dict[str, int]) -> None:
    first = client.post("/api/orders", json={"item": "widget"}, headers={"Idempotency-Key": "a"})
    second = client.post("/api/orders", json={"item": "widget"}, headers={"Idempotency-Key": "b"})

    assert first.json()["id"] == 1
    assert second.json()["id"] == 2
    assert counters["orders"] == 2


def test_error_response_not_cached(client: TestClient, counters: dict[str, int]) -> None:
    """Operation returns 400: result is returned, and a retry re-invokes the handler."""
    first = client.post("/api/errors", json={"item": "x"}, headers={"Idempotency-Key": "k-err"})
    second = client.post("/api/errors", json={"item": "x"}, headers={"Idempotency-Key": "k-err"})

    assert first.status_code == 400
    assert second.status_code == 400
    assert second.headers.get("Idempotent-Replayed") is None
    assert counters["errors"] == 2


def test_missing_mandatory_key_rejected(client: TestClient, counters: dict[str, int]) -> None:
    response = client.post("/api/orders", json={"item": "widget"})

    assert response.status_code == 400
    assert response.json() == {"message": "Missing required header: Idempotency-Key"}
    assert counters["orders"] == 0


def test_optional_key_passes_through(client: TestClient, counters: dict[str, int]) -> None:
    first = client.post("/api/notes")
    second = client.post("/api/notes")

    assert first.json() == {"note": 1}
    assert second.json() == {"note": 2}


def test_optional_key_still_deduplicates_when_present(
    client: TestClient, counters: dict[str, int]
) -> None:
    client.post("/api/notes", headers={"Idempotency-Key": "n1"})
    response = client.post("/api/notes", headers={"Idempotency-Key": "n1"})

    assert response.json() == {"note": 1}
    assert counters["notes"] == 1


def test_unprotected_route_bypasses_coordinator(client: TestClient) -> None:
    response = client.get("/api/orders")

    assert response.status_code == 200
    assert response.headers.get("Idempotent-Replayed") is None


def test_repeated_headers_pass_through(client: TestClient, counters: dict[str, int]) -> None:
    response = client.post("/api/sessions", headers={"Idempotency-Key": "s1"})

    cookies = response.headers.get_list("set-cookie")
    assert response.status_code == 201
    assert len(cookies) == 2
    assert any(cookie.startswith("session=abc") for cookie in cookies)
    assert any(cookie.startswith("csrf=xyz") for cookie in cookies)
    assert response.json() == {"session": 1}
