"""HTTP surface: envelopes, state flow, gated clear, app selection."""

from __future__ import annotations

from pathlib import Path

import pytest

from wagui.services.cop import CheckPlan, CheckResult, CompletionGate


class _Verdict:
    def __init__(self, passed: bool, message: str | None = None):
        self.passed = passed
        self.message = message

    async def run(self, app_root, pbi):
        return CheckResult(self.passed, self.message)


def _use_plan(app, *checks) -> None:
    app.state.completion_gate = CompletionGate(app.state.store, CheckPlan(work_item_checks=list(checks)))


def _set_state(client, tmp_path: Path, **extra):
    body = {"app": "shop", "appRoot": str(tmp_path), "mode": "DEV", "pbi": "PBI-1", "context": "wiring"}
    body.update(extra)
    return client.post("/api/v1/state", json=body)


def test_health_counts_clients(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok", "clients": 0}


def test_initial_state(client):
    res = client.get("/api/v1/state")
    assert res.json() == {
        "success": True,
        "state": {"header": {"mode": None, "app": "", "branch": "dev", "context": ""}},
    }


def test_request_id_header(client):
    res = client.get("/api/v1/state", headers={"X-Request-ID": "abc123"})
    assert res.headers["X-Request-ID"] == "abc123"


def test_state_then_message_then_history(client, tmp_path):
    res = _set_state(client, tmp_path, task=1, totalTasks=3)
    assert res.status_code == 200
    state = res.json()["state"]
    assert state["header"] == {"mode": "DEV", "app": "shop", "branch": "dev", "context": "wiring"}
    assert state["activePbi"] == "PBI-1"
    assert state["selectedApp"]["appRoot"] == str(tmp_path)

    res = client.post(
        "/api/v1/messages",
        json={"role": "architect", "type": "review", "content": "Looks right", "approved": True},
    )
    assert res.status_code == 200
    posted = res.json()["message"]
    assert posted["metadata"] == {"approved": True}

    res = client.get("/api/v1/messages")
    body = res.json()
    assert body["success"] is True
    assert body["count"] == 2
    context, review = body["messages"]
    assert context["type"] == "context"
    assert context["role"] == "dev"
    assert context["content"] == "Mode: DEV | PBI-1 | Task 1/3 | wiring"
    assert "metadata" not in context
    assert review["id"] == posted["id"]
    assert review["header"] == state["header"]
    assert context["timestamp"] <= review["timestamp"]


def test_message_without_metadata_omits_it(client):
    res = client.post("/api/v1/messages", json={"role": "pm", "type": "chat", "content": "hi", "task": 0})
    assert "metadata" not in res.json()["message"]


def test_history_limit(client):
    for i in range(3):
        client.post("/api/v1/messages", json={"role": "user", "type": "chat", "content": f"m{i}"})
    body = client.get("/api/v1/messages?limit=2").json()
    assert [m["content"] for m in body["messages"]] == ["m0", "m1"]


@pytest.mark.parametrize(
    "path, body",
    [
        ("/api/v1/state", {"mode": "DEV"}),
        ("/api/v1/state", {"app": "shop", "mode": "BOGUS", "context": ""}),
        ("/api/v1/state", {"app": "shop", "context": "no mode"}),
        ("/api/v1/state", {"app": "shop", "mode": "DEV"}),
        ("/api/v1/messages", {"role": "intern", "type": "chat", "content": "x"}),
        ("/api/v1/messages", {"role": "dev", "type": "chat"}),
    ],
)
def test_validation_errors_use_error_envelope(client, path, body):
    res = client.post(path, json=body)
    assert res.status_code == 400
    payload = res.json()
    assert payload["success"] is False
    assert isinstance(payload["error"], str) and payload["error"]


def test_invalid_limit_is_rejected(client):
    assert client.get("/api/v1/messages?limit=0").status_code == 400


def test_unknown_route_uses_error_envelope(client):
    res = client.get("/api/v1/nothing")
    assert res.status_code == 404
    assert res.json()["success"] is False


def test_oversized_body_is_rejected(client):
    res = client.post(
        "/api/v1/messages",
        json={"role": "dev", "type": "chat", "content": "x" * 2_000_000},
    )
    assert res.status_code == 413
    assert res.json() == {"success": False, "error": "Request body too large"}


class TestClear:
    def test_clear_without_active_item(self, client):
        client.post("/api/v1/messages", json={"role": "user", "type": "chat", "content": "hi"})
        res = client.delete("/api/v1/messages")
        assert res.status_code == 200
        assert res.json() == {"success": True, "message": "Messages cleared"}
        assert client.get("/api/v1/messages").json()["count"] == 0

    def test_refused_clear_keeps_messages(self, client, tmp_path):
        _set_state(client, tmp_path)
        client.post("/api/v1/messages", json={"role": "dev", "type": "chat", "content": "work"})

        res = client.delete("/api/v1/messages")
        assert res.status_code == 403
        assert res.json() == {
            "success": False,
            "error": "wag_cop must pass before wag_clear. Call wag_cop first.",
        }
        assert client.get("/api/v1/messages").json()["count"] == 2
        assert client.get("/api/v1/state").json()["state"]["activePbi"] == "PBI-1"

    def test_failed_cop_blocks_then_passing_cop_allows(self, app, client, tmp_path):
        _set_state(client, tmp_path)

        _use_plan(app, _Verdict(False, "ADR missing"), _Verdict(False, "PBI missing"))
        res = client.post("/api/v1/cop", json={"pbi": "PBI-1"})
        assert res.status_code == 200
        assert res.json()["passed"] is False
        refused = client.delete("/api/v1/messages")
        assert refused.status_code == 403
        assert refused.json()["error"].endswith("Failures: ADR missing; PBI missing")

        _use_plan(app, _Verdict(True))
        body = client.post("/api/v1/cop", json={"pbi": "PBI-1"}).json()
        assert body["success"] is True
        assert body["passed"] is True
        assert body["failures"] == []
        assert body["sessionId"]

        res = client.delete("/api/v1/messages")
        assert res.status_code == 200
        state = client.get("/api/v1/state").json()["state"]
        assert state == {"header": {"mode": None, "app": "", "branch": "dev", "context": ""}}
        assert client.get("/api/v1/messages").json()["count"] == 0


class TestApps:
    def test_state_with_root_registers_app(self, client, tmp_path):
        _set_state(client, tmp_path, repo="/src")
        apps = client.get("/api/v1/apps").json()["apps"]
        assert len(apps) == 1
        assert apps[0]["name"] == "shop"
        assert apps[0]["repoRoot"] == "/src"
        assert apps[0]["lastUsed"] > 0

    def test_select_requires_app(self, client):
        res = client.post("/api/v1/select", json={})
        assert res.status_code == 400
        assert res.json() == {"success": False, "error": "app is required"}

    def test_select_unknown_app(self, client):
        res = client.post("/api/v1/select", json={"app": "nope"})
        assert res.status_code == 404
        assert res.json() == {"success": False, "error": 'App "nope" not found'}

    def test_select_known_app(self, app, client, tmp_path):
        _set_state(client, tmp_path)
        client.post(
            "/api/v1/state",
            json={"app": "other", "appRoot": str(tmp_path / "other"), "mode": "DOCS", "context": ""},
        )

        res = client.post("/api/v1/select", json={"app": "shop"})
        assert res.status_code == 200
        assert res.json()["app"]["name"] == "shop"
        state = client.get("/api/v1/state").json()["state"]
        assert state["selectedApp"]["name"] == "shop"
        assert state["header"]["app"] == "shop"
        assert app.state.follower.current_app == "shop"


class TestGateEndpoints:
    def test_cop_requires_pbi(self, client):
        res = client.post("/api/v1/cop", json={})
        assert res.status_code == 400
        assert res.json()["error"] == "pbi is required"

    @pytest.mark.parametrize("endpoint", ["/api/v1/cop", "/api/v1/gate"])
    def test_active_pbi_does_not_stand_in_for_body(self, client, tmp_path, endpoint):
        _set_state(client, tmp_path)
        res = client.post(endpoint, json={})
        assert res.status_code == 400
        assert res.json() == {"success": False, "error": "pbi is required"}

    def test_cop_requires_selected_app(self, client):
        client.post("/api/v1/state", json={"app": "shop", "mode": "DEV", "context": "", "pbi": "PBI-1"})
        res = client.post("/api/v1/cop", json={"pbi": "PBI-1"})
        assert res.status_code == 400
        assert res.json()["error"] == "No app selected"

    def test_gate_runs_configured_commands(self, client, tmp_path):
        _set_state(client, tmp_path)
        res = client.post("/api/v1/gate", json={"pbi": "PBI-1"})
        assert res.status_code == 200
        body = res.json()
        assert body["success"] is True
        assert body["passed"] is True
        assert body["copPassed"] is True
        assert "lint ok" in body["copOutput"]
        assert "tests ok" in body["copOutput"]
