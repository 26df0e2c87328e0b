import asyncio

import httpx
import pytest
import respx
import yaml
from fastapi.testclient import TestClient

from services.gateway.config import GatewayConfig
from services.gateway.core.exceptions import ConfigurationError
from services.gateway.main import create_app, to_starlette_response
from services.gateway.models.http import GatewayResponse


class _PendingProbe:
    """Probe that never finishes; tests set target health directly."""

    def __init__(self, client):
        self.client = client

    async def __call__(self, target, spec):
        await asyncio.Event().wait()


@pytest.fixture(autouse=True)
def pending_probes(monkeypatch):
    monkeypatch.setattr("services.gateway.lifecycle.HttpHealthProbe", _PendingProbe)


@pytest.fixture
def gateway_config(tmp_path, routing_doc, sorry_html):
    routing_path = tmp_path / "routing.yml"
    routing_path.write_text(yaml.safe_dump(routing_doc), encoding="utf-8")

    content_root = tmp_path / "content"
    (content_root / "sorry-bucket").mkdir(parents=True)
    (content_root / "sorry-bucket" / "index.html").write_text(sorry_html, encoding="utf-8")

    return GatewayConfig(
        ROUTING_CONFIG_PATH=str(routing_path),
        CONTENT_STORE_BACKEND="local",
        LOCAL_CONTENT_ROOT=str(content_root),
    )


def _mark_web(client: TestClient, healthy: bool) -> None:
    tracker = client.app.state.health_tracker
    for _ in range(2):
        tracker.record_probe_result("web-1", healthy)


def test_fallback_page_while_backend_is_initial(gateway_config, sorry_html):
    with TestClient(create_app(gateway_config)) as client:
        response = client.get("/any/page")

    assert response.status_code == 503
    assert response.headers["content-type"] == "text/html"
    assert response.text == sorry_html


@respx.mock
def test_healthy_backend_over_http(gateway_config, web_endpoint):
    backend = respx.get(f"{web_endpoint}/cart").mock(
        return_value=httpx.Response(200, json={"items": []})
    )
    with TestClient(create_app(gateway_config)) as client:
        _mark_web(client, healthy=True)
        response = client.get("/cart", headers={"X-Forwarded-For": "198.51.100.9"})

    assert response.status_code == 200
    assert response.json() == {"items": []}
    sent = backend.calls.last.request
    assert sent.headers["x-forwarded-for"].startswith("198.51.100.9, ")
    assert sent.headers["x-amzn-trace-id"] == response.headers["x-amzn-trace-id"]


def test_missing_fallback_page_answers_500(gateway_config, tmp_path):
    (tmp_path / "content" / "sorry-bucket" / "index.html").unlink()

    with TestClient(create_app(gateway_config)) as client:
        _mark_web(client, healthy=False)
        response = client.get("/")

    assert response.status_code == 500
    assert response.text == "Error retrieving HTML file: The specified key does not exist."


def test_invalid_routing_config_prevents_startup(gateway_config, routing_doc):
    routing_doc["rules"].pop()
    with open(gateway_config.ROUTING_CONFIG_PATH, "w", encoding="utf-8") as f:
        yaml.safe_dump(routing_doc, f)

    with pytest.raises(ConfigurationError, match="no default rule"):
        with TestClient(create_app(gateway_config)):
            pass


def test_post_body_reaches_fallback(gateway_config):
    with TestClient(create_app(gateway_config)) as client:
        response = client.post("/submit", data={"name": "x"})

    assert response.status_code == 503


def test_trace_header_is_propagated(gateway_config):
    trace = "Root=1-5759e988-bd862e3fe1be46a994272793;Sampled=1"
    with TestClient(create_app(gateway_config)) as client:
        response = client.get("/", headers={"X-Amzn-Trace-Id": trace})
        generated = client.get("/")

    assert response.headers["x-amzn-trace-id"] == trace
    assert generated.headers["x-amzn-trace-id"].startswith("Root=1-")


def test_malformed_trace_header_is_replaced(gateway_config):
    with TestClient(create_app(gateway_config)) as client:
        response = client.get("/", headers={"X-Amzn-Trace-Id": "garbage"})

    assert response.headers["x-amzn-trace-id"].startswith("Root=1-")


def test_admin_health(gateway_config):
    with TestClient(create_app(gateway_config)) as client:
        response = client.get("/_gateway/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_admin_targets(gateway_config):
    with TestClient(create_app(gateway_config)) as client:
        _mark_web(client, healthy=False)
        everything = client.get("/_gateway/targets").json()
        other = client.get("/_gateway/targets", params={"target_group": "other"}).json()

    assert [(t["target_id"], t["state"]) for t in everything["targets"]] == [("web-1", "unhealthy")]
    assert everything["targets"][0]["reason"] == "Target.FailedHealthChecks"
    assert other == {"targets": []}


def test_admin_routes_can_be_disabled(gateway_config):
    gateway_config.ADMIN_PATH_PREFIX = ""
    with TestClient(create_app(gateway_config)) as client:
        response = client.get("/_gateway/health")

    # Falls through to the routing table.
    assert response.status_code == 503


def test_access_log_records_rule(gateway_config, caplog):
    with caplog.at_level("INFO", logger="gateway.access"):
        with TestClient(create_app(gateway_config)) as client:
            client.get("/landing")

    record = next(r for r in caplog.records if r.name == "gateway.access")
    assert record.status == 503
    assert record.rule_priority == 2
    assert record.path == "/landing"


def test_to_starlette_response_keeps_repeated_headers():
    result = GatewayResponse(
        status_code=200,
        headers=[("set-cookie", "a=1"), ("set-cookie", "b=2"), ("content-length", "999")],
        body=b"ok",
    )

    response = to_starlette_response(result)

    assert response.headers.getlist("set-cookie") == ["a=1", "b=2"]
    assert response.headers["content-length"] == "2"


def test_default_forward_rule_without_live_target(tmp_path, routing_doc):
    routing_doc["rules"] = [{"action": {"type": "forward", "target_group": "web"}}]
    routing_path = tmp_path / "routing.yml"
    routing_path.write_text(yaml.safe_dump(routing_doc), encoding="utf-8")
    cfg = GatewayConfig(
        ROUTING_CONFIG_PATH=str(routing_path),
        CONTENT_STORE_BACKEND="local",
        LOCAL_CONTENT_ROOT=str(tmp_path),
    )

    with TestClient(create_app(cfg)) as client:
        response = client.get("/x")

    assert response.status_code == 502
    assert response.text == "Bad Gateway"
