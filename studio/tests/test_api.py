import time

from fastapi.testclient import TestClient

from studio import settings as settings_module
from studio.main import app


def _run(client: TestClient, prompt: str = "todo app") -> dict:
    response = client.post("/api/runs", json={"prompt": prompt})
    assert response.status_code == 202
    for _ in range(100):
        state = client.get("/api/state").json()
        if state["status"] in ("ready", "error"):
            return state
        time.sleep(0.05)
    raise AssertionError("Run did not finish in time")


def test_initial_state():
    with TestClient(app) as client:
        state = client.get("/api/state").json()
        assert state["status"] == "idle"
        assert state["fileSystem"] == {}
        assert state["history"] == []
        assert state["terminalLogs"][0].startswith("Welcome to Agentic Studio Pro")


def test_run_generates_project():
    with TestClient(app) as client:
        state = _run(client)
        assert state["status"] == "ready"
        assert "src/App.tsx" in state["fileSystem"]
        assert "src/lib/mockData.ts" in state["fileSystem"]
        assert len(state["history"]) == 7
        assert set(state["history"][0]) == {"id", "label", "timestamp", "status"}
        assert 0 <= state["activeReview"]["overallScore"] <= 100

        files = client.get("/api/files").json()
        languages = {f["path"]: f["language"] for f in files["files"]}
        assert languages["src/App.tsx"] == "typescript"
        assert files["read_only"] is False

        preview = client.get("/api/preview")
        assert preview.status_code == 200
        assert state["designSystem"]["metadata"]["appName"] in preview.text


def test_run_rejects_blank_prompt():
    with TestClient(app) as client:
        assert client.post("/api/runs", json={"prompt": ""}).status_code == 422
        assert client.post("/api/runs", json={"prompt": "   "}).status_code == 422


def test_history_select_and_rollback():
    with TestClient(app) as client:
        state = _run(client)
        snapshot = state["history"][4]

        view = client.post("/api/history/select", json={"id": snapshot["id"]}).json()
        assert view["readOnly"] is True
        assert view["label"] == snapshot["label"]

        blocked = client.put("/api/files", json={"path": "src/App.tsx", "content": "x"})
        assert blocked.status_code == 409

        rolled = client.post(f"/api/history/{snapshot['id']}/rollback").json()
        assert rolled["status"] == "ready"
        assert rolled["selectedHistoryId"] is None
        assert len(rolled["history"]) == 7
        assert set(rolled["fileSystem"].values()) == {"// Coding in progress..."}

        assert client.post("/api/history/missing/rollback").status_code == 404


def test_editor_and_theme_commands():
    with TestClient(app) as client:
        _run(client)
        selected = client.post("/api/files/select", json={"path": "src/lib/mockData.ts"}).json()
        assert selected["language"] == "typescript"
        assert client.get("/api/state").json()["currentFile"] == "src/lib/mockData.ts"

        assert client.put("/api/files", json={"path": "src/App.tsx", "content": "// edited"}).status_code == 200
        assert client.get("/api/state").json()["fileSystem"]["src/App.tsx"] == "// edited"
        assert client.put("/api/files", json={"path": "nope.ts", "content": ""}).status_code == 404

        design = client.patch("/api/design", json={"colors": {"primary": "#000000"}}).json()
        assert design["colors"]["primary"] == "#000000"
        assert "#000000" in client.get("/api/preview").text


def test_plugin_endpoints():
    with TestClient(app) as client:
        plugins = client.get("/api/plugins").json()["plugins"]
        assert {p["id"]: p["enabled"] for p in plugins}["perf-optimizer"] is False

        toggled = client.post("/api/plugins/perf-optimizer/toggle").json()
        assert toggled["enabled"] is True

        ran = client.post("/api/plugins/docs-writer/run")
        assert ran.status_code == 200
        assert len(ran.json()["comments"]) == 1
        state = client.get("/api/state").json()
        assert state["history"][-1]["label"] == "Manual Run: Docs Writer"

        client.post("/api/plugins/docs-writer/toggle")
        assert client.post("/api/plugins/docs-writer/run").status_code == 409
        assert client.post("/api/plugins/unknown/run").status_code == 404


def test_save_and_reset():
    with TestClient(app) as client:
        _run(client)
        saved = client.post("/api/save").json()
        assert client.get("/api/state").json()["lastSaved"] == saved["lastSaved"]

        state = client.post("/api/reset").json()
        assert state["status"] == "idle"
        assert state["fileSystem"] == {}
        assert state["history"] == []


def test_api_key_required_when_configured(monkeypatch):
    monkeypatch.setenv("ADMIN_API_KEY", "secret")
    settings_module.get_settings.cache_clear()
    with TestClient(app) as client:
        assert client.get("/api/state").status_code == 401
        assert client.get("/api/state", headers={"X-API-Key": "secret"}).status_code == 200


def test_websocket_pushes_state_and_accepts_reset():
    with TestClient(app) as client:
        with client.websocket_connect("/ws/studio") as ws:
            hello = ws.receive_json()
            assert hello["type"] == "state"
            assert hello["data"]["status"] == "idle"

            ws.send_json({"type": "command", "command": "reset"})
            types = []
            for _ in range(5):
                message = ws.receive_json()
                types.append(message["type"])
                if message["type"] == "info":
                    break
            assert "reset" in types
            assert types[-1] == "info"
