"""
Tests for request logging middleware and route spans.
"""
import logging

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from oauth_platform.oauth_platform.common.request_logger import RequestLoggingMiddleware
from oauth_platform.oauth_platform.common.tracing import RouteSpan, route_span


@pytest.fixture
def app():
    app = FastAPI()
    app.add_middleware(RequestLoggingMiddleware, trace_header="X-Trace-Id")

    @app.get("/trace")
    def trace(request: Request):
        return {"trace_id": request.state.trace_id}

    return app


def test_middleware_generates_trace_id(app):
    response = TestClient(app).get("/trace")

    assert response.status_code == 200
    trace_id = response.headers["X-Trace-Id"]
    assert len(trace_id) == 32
    assert response.json()["trace_id"] == trace_id


def test_middleware_keeps_incoming_trace_id(app):
    response = TestClient(app).get("/trace", headers={"X-Trace-Id": "abc123"})

    assert response.headers["X-Trace-Id"] == "abc123"
    assert response.json()["trace_id"] == "abc123"


def test_middleware_logs_requests(app, caplog):
    with caplog.at_level(logging.INFO, logger="oauth_platform.oauth_platform.common.request_logger"):
        TestClient(app).get("/trace")

    assert any("Request: GET /trace - Status: 200" in record.getMessage() for record in caplog.records)


def test_span_records_events_and_finishes_once(caplog):
    span = RouteSpan("register_user", trace_id="t-1")
    span.log("validating_input")
    span.log("saving_user")
    span.set_tag("user", "bob")

    with caplog.at_level(logging.INFO, logger="oauth_platform.oauth_platform.common.tracing"):
        span.finish()
        span.finish()

    assert span.finished is True
    assert span.error is False
    assert span.duration_ms is not None
    messages = [r.getMessage() for r in caplog.records if "SPAN register_user" in r.getMessage()]
    assert len(messages) == 1
    assert "trace_id=t-1" in messages[0]
    assert "validating_input,saving_user" in messages[0]


def test_route_span_marks_errors_and_reraises():
    class FakeState:
        trace_id = "t-2"

    class FakeRequest:
        state = FakeState()

    with pytest.raises(KeyError):
        with route_span(FakeRequest(), "lookup") as span:
            span.log("finding_user")
            raise KeyError("missing")

    assert span.trace_id == "t-2"
    assert span.error is True
    assert span.finished is True
    assert span.events == ["finding_user", "error:KeyError"]


def test_route_span_without_trace_id():
    class FakeRequest:
        class state:
            pass

    with route_span(FakeRequest(), "anonymous") as span:
        pass

    assert len(span.trace_id) == 32
    assert span.error is False


def test_service_responses_carry_trace_header(catalog_client):
    response = catalog_client.get("/products", headers={"X-Trace-Id": "catalog-trace"})

    assert response.status_code == 200
    assert response.headers["X-Trace-Id"] == "catalog-trace"


def request_count(method, route, status):
    labels = {"method": method, "route": route, "status": str(status)}
    return REGISTRY.get_sample_value("http_requests_total", labels) or 0.0


def test_middleware_counts_requests_by_route_template(catalog_client):
    before_missing = request_count("GET", "/products/{product_id}", 404)
    before_list = request_count("GET", "/products", 200)

    catalog_client.get("/products/does-not-exist")
    catalog_client.get("/products")

    assert request_count("GET", "/products/{product_id}", 404) == before_missing + 1
    assert request_count("GET", "/products", 200) == before_list + 1


def test_middleware_records_request_duration(app):
    labels = {"method": "GET", "route": "/trace", "status": "200"}
    before = REGISTRY.get_sample_value("http_request_duration_seconds_count", labels) or 0.0

    TestClient(app).get("/trace")

    assert REGISTRY.get_sample_value("http_request_duration_seconds_count", labels) == before + 1


def test_unmatched_paths_share_one_label(app):
    before = request_count("GET", "unmatched", 404)

    TestClient(app).get("/nowhere/123")

    assert request_count("GET", "unmatched", 404) == before + 1


@pytest.mark.parametrize("client_fixture", ["catalog_client", "oauth_client"])
def test_metrics_endpoint_exposes_prometheus_text(request, client_fixture):
    client = request.getfixturevalue(client_fixture)
    client.get("/health")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "http_requests_total" in response.text
    assert "http_request_duration_seconds_bucket" in response.text
