"""
Tests for the correlation ID context and middleware.
"""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from portfolio_audit.server.middleware.correlation import (
    CORRELATION_HEADER,
    CorrelationIdMiddleware,
    get_correlation_id,
    set_correlation_id,
)


def _app():
    app = FastAPI()
    app.add_middleware(CorrelationIdMiddleware)

    @app.get("/echo")
    async def echo():
        return {"correlation_id": get_correlation_id()}

    return app


def test_generated_when_missing():
    response = TestClient(_app()).get("/echo")

    assert response.status_code == 200
    generated = response.headers[CORRELATION_HEADER]
    assert generated
    assert response.json()["correlation_id"] == generated


def test_propagated_from_request():
    response = TestClient(_app()).get("/echo", headers={CORRELATION_HEADER: "abc-123"})

    assert response.headers[CORRELATION_HEADER] == "abc-123"
    assert response.json()["correlation_id"] == "abc-123"


def test_set_correlation_id_generates_value():
    value = set_correlation_id()

    assert value
    assert get_correlation_id() == value
