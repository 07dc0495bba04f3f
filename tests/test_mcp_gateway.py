from fastapi.testclient import TestClient

from merkl_mcp.config import SERVER_NAME, SERVER_VERSION
from merkl_mcp.server import app


def test_health_endpoint():
    client = TestClient(app)
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["X-Request-ID"]


def test_metrics_count_requests():
    client = TestClient(app)
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    body = resp.json()
    assert body["requests"] >= 1
    assert body["request_latency"]["count"] >= 1


def test_mcp_initialize():
    client = TestClient(app)
    resp = client.post(
        "/mcp",
        json={
            "jsonrpc": "2.0",
            "id": 10,
            "method": "initialize",
            "params": {"protocolVersion": "2025-06-18", "capabilities": {}},
        },
    )
    assert resp.status_code == 200
    result = resp.json()["result"]
    assert result["protocolVersion"] == "2025-06-18"
    assert result["serverInfo"] == {"name": SERVER_NAME, "version": SERVER_VERSION}
    assert result["capabilities"]["tools"]["listChanged"] is False


def test_mcp_tools_list():
    client = TestClient(app)
    resp = client.post("/mcp", json={"jsonrpc": "2.0", "id": 3, "method": "tools/list"})
    data = resp.json()
    assert data["id"] == 3
    assert any(tool["name"] == "opportunities-search" for tool in data["result"]["tools"])


def test_mcp_tools_call_timestamp():
    client = TestClient(app)
    resp = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 4, "method": "tools/call", "params": {"name": "get-current-timestamp", "arguments": {}}},
    )
    result = resp.json()["result"]
    assert result["content"][0]["type"] == "text"
    assert isinstance(result["structuredContent"]["timestamp"], int)


def test_mcp_tools_call_uses_default_client(monkeypatch, recording_client):
    stub = recording_client(11)
    monkeypatch.setattr("merkl_mcp.mcp.default_client", stub)
    client = TestClient(app)
    resp = client.post(
        "/mcp",
        json={
            "jsonrpc": "2.0",
            "id": 5,
            "method": "call_tool",
            "params": {"tool": "campaigns-count", "params": {"status": "LIVE"}},
        },
    )
    assert resp.json()["result"]["structuredContent"] == {"count": 11}
    assert stub.calls == [("count_campaigns", {"status": "LIVE"})]


def test_mcp_tools_call_validation_error_is_in_band():
    client = TestClient(app)
    resp = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 6, "method": "tools/call", "params": {"name": "opportunities-get", "arguments": {"id": "abc"}}},
    )
    assert resp.status_code == 200
    assert resp.json()["result"]["isError"] is True


def test_mcp_unknown_method_returns_error():
    client = TestClient(app)
    resp = client.post("/mcp", json={"jsonrpc": "2.0", "id": 7, "method": "not_a_real_method"})
    assert resp.json()["error"]["code"] == -32601


def test_mcp_invalid_params_type():
    client = TestClient(app)
    resp = client.post("/mcp", json={"jsonrpc": "2.0", "id": 11, "method": "call_tool", "params": []})
    assert resp.json()["error"]["code"] == -32602


def test_mcp_missing_tool_name():
    client = TestClient(app)
    resp = client.post("/mcp", json={"jsonrpc": "2.0", "id": 13, "method": "tools/call", "params": {}})
    assert resp.json()["error"]["code"] == -32602


def test_mcp_parse_error_invalid_json():
    client = TestClient(app)
    resp = client.post("/mcp", content="{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == -32700


def test_mcp_missing_method_invalid_request():
    client = TestClient(app)
    resp = client.post("/mcp", json={"jsonrpc": "2.0", "id": 12})
    assert resp.json()["error"]["code"] == -32600


def test_mcp_initialized_notification_ignored():
    client = TestClient(app)
    resp = client.post("/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"})
    assert resp.status_code == 204
    assert resp.text == ""
