"""
Tests for the caching request interceptor, independent of the shop routes.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from eshop_api.api.interceptor import uncached, with_cache
from eshop_api.errors import CacheSerializationError
from eshop_api.handlers import HandlerResult


class CountingHandler:
    """Handler returning a canned result and counting its calls."""

    def __init__(self, result: HandlerResult) -> None:
        self.result = result
        self.calls = 0
        self.__name__ = "counting"
        self.__doc__ = "Counting handler."

    def __call__(self, params):
        self.calls += 1
        return self.result


def _app(cache_service, handler, endpoint="get_ticket_types"):
    app = FastAPI()
    app.add_api_route(f"/{endpoint}", with_cache(cache_service, endpoint)(handler), methods=["POST"])
    return app


def test_second_request_served_from_cache(cache_service):
    handler = CountingHandler(HandlerResult({"error": False, "message": "ok", "data": ["1"]}))
    client = TestClient(_app(cache_service, handler))

    first = client.post("/get_ticket_types", json={})
    second = client.post("/get_ticket_types", json={})

    assert first.status_code == second.status_code == 200
    assert first.content == second.content
    assert handler.calls == 1
    assert cache_service.stats().hits == 1
    assert cache_service.stats().misses == 1


def test_different_params_different_entries(cache_service):
    handler = CountingHandler(HandlerResult({"error": False, "message": "ok", "data": []}))
    client = TestClient(_app(cache_service, handler))

    client.post("/get_ticket_types", json={"page": "1"})
    client.post("/get_ticket_types", json={"page": "2"})

    assert handler.calls == 2
    assert sorted(cache_service.store_backend.keys()) == [
        "get_ticket_types|page:1",
        "get_ticket_types|page:2",
    ]


def test_error_envelope_not_cached(cache_service):
    handler = CountingHandler(HandlerResult({"error": True, "message": "nope", "data": []}))
    client = TestClient(_app(cache_service, handler))

    client.post("/get_ticket_types", json={})
    client.post("/get_ticket_types", json={})

    assert handler.calls == 2
    assert cache_service.stats().keys == 0


def test_non_2xx_not_cached(cache_service):
    handler = CountingHandler(HandlerResult({"error": False, "data": []}, status_code=500))
    client = TestClient(_app(cache_service, handler))

    client.post("/get_ticket_types", json={})
    response = client.post("/get_ticket_types", json={})

    assert response.status_code == 500
    assert handler.calls == 2
    assert cache_service.stats().keys == 0


def test_no_cache_header_bypasses(cache_service):
    handler = CountingHandler(HandlerResult({"error": False, "message": "ok", "data": []}))
    client = TestClient(_app(cache_service, handler))

    client.post("/get_ticket_types", json={})
    client.post("/get_ticket_types", json={}, headers={"Cache-Control": "no-cache"})

    assert handler.calls == 2
    assert cache_service.stats().hits == 0


def test_unserializable_payload_sent_uncached(cache_service, monkeypatch):
    """A payload the store rejects is still returned to the client."""
    handler = CountingHandler(HandlerResult({"error": False, "message": "ok", "data": []}))
    client = TestClient(_app(cache_service, handler))

    def reject(key, payload, ttl=None):
        raise CacheSerializationError(key, "not JSON")

    monkeypatch.setattr(cache_service, "store", reject)
    response = client.post("/get_ticket_types", json={})

    assert response.status_code == 200
    assert response.json()["message"] == "ok"


def test_handler_exception_propagates(cache_service):
    def broken(params):
        raise RuntimeError("database went away")

    client = TestClient(_app(cache_service, broken))

    with pytest.raises(RuntimeError, match="database went away"):
        client.post("/get_ticket_types", json={})
    assert cache_service.stats().keys == 0


def test_uncached_always_runs_handler(cache_service):
    handler = CountingHandler(HandlerResult({"error": False, "message": "ok", "data": []}))
    app = FastAPI()
    app.add_api_route("/manage_cart", uncached(handler), methods=["POST"])
    client = TestClient(app)

    client.post("/manage_cart", json={"user_id": "1"})
    client.post("/manage_cart", json={"user_id": "1"})

    assert handler.calls == 2
    assert cache_service.stats().keys == 0
