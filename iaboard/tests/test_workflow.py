import asyncio
import json
import os
import time
from pathlib import Path
from uuid import uuid4

from fastapi.testclient import TestClient

from iaboard import settings as settings_module
from iaboard.core.graph import progress_for, render_summary
from iaboard.core.orchestrator import orchestrator
from iaboard.core.workflow_steps import WORKFLOW_STEPS, fallback_for, process_step
from iaboard.core.ws_manager import WSManager
from iaboard.main import app
from iaboard.memory import utils as db_utils
from iaboard.memory.db import dispose_engine, get_session, init_db


def _wait_for_status(client: TestClient, run_id: str, wanted=("completed", "error", "stopped")) -> dict:
    for _ in range(100):
        body = client.get(f"/api/workflows/{run_id}").json()
        if body["status"] in wanted:
            return body
        time.sleep(0.1)
    raise AssertionError("Workflow did not finish in time")


def _wait_for_step(client: TestClient, run_id: str, step: int = 1) -> dict:
    for _ in range(100):
        body = client.get(f"/api/workflows/{run_id}").json()
        if f"step_{step}" in body["results"]:
            return body
        time.sleep(0.1)
    raise AssertionError(f"Step {step} did not complete in time")


def _slow_steps(monkeypatch, seconds):
    monkeypatch.setenv("WORKFLOW_STEP_DELAY", str(seconds))
    settings_module.get_settings.cache_clear()


def test_steps_form_a_ten_step_graph():
    assert [s.id for s in WORKFLOW_STEPS] == list(range(1, 11))
    assert WORKFLOW_STEPS[0].connections == [2, 3, 4, 5]
    assert WORKFLOW_STEPS[-1].connections == []


def test_progress_is_percentage_of_completed_steps():
    assert progress_for(0, 10) == 0.0
    assert progress_for(3, 10) == 30.0
    assert progress_for(1, 3) == 33.3
    assert progress_for(1, 0) == 0.0


def test_fallback_for_unknown_step_is_generic():
    data = fallback_for(42)
    assert data["status"] == "processed"
    assert "timestamp" in data
    assert fallback_for(5)["roi"] == "340% em 12 meses"


def test_process_step_uses_model_json():
    async def inner():
        class A:
            async def acomplete(self, prompt, json_mode=False, **kwargs):
                assert json_mode
                assert "curso online" in prompt
                assert "Contexto das etapas anteriores" in prompt
                return '```json\n{"marketSize": "R$ 1 bilhão",}\n```'

        outcome = await process_step(1, "curso online", {"step_0": {"x": 1}}, adapter=A())
        assert outcome == {"stepId": 1, "data": {"marketSize": "R$ 1 bilhão"}, "source": "ai"}

    asyncio.run(inner())


def test_process_step_falls_back_on_error():
    async def inner():
        class A:
            async def acomplete(self, prompt, json_mode=False, **kwargs):
                raise RuntimeError("provider down")

        outcome = await process_step(2, "mentoria", adapter=A())
        assert outcome["source"] == "fallback"
        assert outcome["data"]["primaryAudience"] == "Empreendedores 25-45 anos"

    asyncio.run(inner())


def test_render_summary_lists_completed_steps():
    state = {
        "run_id": "r",
        "product_type": "ebook",
        "results": {"step_1": {"marketTrends": ["IA"], "growthRate": "10%"}},
        "sources": {"step_1": "ai"},
    }
    text = render_summary(state)
    assert text.startswith("# Produto Finalizado: ebook")
    assert "## 1. Análise IA de Mercado" in text
    assert '- **marketTrends**: ["IA"]' in text
    assert "## 2." not in text


def test_process_step_endpoint_returns_fallback_in_mock_mode():
    with TestClient(app) as client:
        body = client.post("/api/ai/process-step", json={"stepId": 3, "productType": "saas"}).json()
        assert body["success"] is True
        assert body["stepId"] == 3
        assert body["source"] == "fallback"
        assert body["data"]["competitors"] == 3


def test_workflow_runs_to_completion_and_writes_download():
    with TestClient(app) as client:
        resp = client.post("/api/workflows", json={"productType": "curso de fotografia"})
        assert resp.status_code == 201
        run_id = resp.json()["runId"]

        body = _wait_for_status(client, run_id)
        assert body["status"] == "completed"
        assert body["progress"] == 100.0
        assert set(body["results"]) == {f"step_{i}" for i in range(1, 11)}
        assert body["downloadUrl"] == f"/downloads/produto_{run_id}.md"

        summary = Path(os.environ["DOWNLOADS_ROOT"]) / body["downloadFile"]
        assert "Produto Finalizado: curso de fotografia" in summary.read_text(encoding="utf-8")

        # Event persistence is fire-and-forget
        for _ in range(50):
            events = client.get(f"/api/workflows/{run_id}/events").json()
            if any(e["msg"] == "Workflow concluído!" for e in events):
                break
            time.sleep(0.1)
        else:
            raise AssertionError("Completion event was not persisted")

        runs = client.get("/api/workflows", params={"status": "completed"}).json()["runs"]
        assert [r["runId"] for r in runs] == [run_id]


def test_workflow_validation_and_unknown_run():
    with TestClient(app) as client:
        assert client.post("/api/workflows", json={"productType": ""}).status_code == 422
        assert client.get(f"/api/workflows/{uuid4()}").status_code == 404
        assert client.post(f"/api/workflows/{uuid4()}/stop").status_code == 404


def test_steps_endpoint_hides_prompts():
    with TestClient(app) as client:
        steps = client.get("/api/workflows/steps").json()["steps"]
        assert len(steps) == 10
        assert "prompt" not in steps[0]
        assert steps[0]["title"] == "Análise IA de Mercado"


def test_websocket_greets_and_acknowledges_stop():
    with TestClient(app) as client:
        run_id = str(uuid4())
        with client.websocket_connect(f"/ws/workflows/{run_id}") as ws:
            hello = ws.receive_json()
            assert hello["msg"] == "WebSocket connected"
            assert hello["run_id"] == run_id

            ws.send_text("not json")
            ws.send_text(json.dumps({"type": "command", "command": "stop"}))
            ack = ws.receive_json()
            assert ack == {"type": "info", "msg": "stop requested", "run_id": run_id}
        # nothing was running, so no stop flag is kept around
        assert run_id not in orchestrator._stop_events


def test_running_workflow_can_be_stopped(monkeypatch):
    _slow_steps(monkeypatch, 5)
    with TestClient(app) as client:
        run_id = client.post("/api/workflows", json={"productType": "mentoria"}).json()["runId"]
        body = _wait_for_step(client, run_id)
        assert body["status"] == "processing"

        resp = client.post(f"/api/workflows/{run_id}/stop")
        assert resp.json() == {"success": True, "stopped": True, "status": "stopped"}

        body = _wait_for_status(client, run_id)
        assert body["status"] == "stopped"
        assert "step_10" not in body["results"]
        assert run_id not in orchestrator._stop_events

        again = client.post(f"/api/workflows/{run_id}/stop").json()
        assert again == {"success": True, "stopped": False, "status": "stopped"}


def test_websocket_stop_interrupts_running_workflow(monkeypatch):
    _slow_steps(monkeypatch, 5)
    with TestClient(app) as client:
        run_id = client.post("/api/workflows", json={"productType": "ebook"}).json()["runId"]
        _wait_for_step(client, run_id)
        with client.websocket_connect(f"/ws/workflows/{run_id}") as ws:
            assert ws.receive_json()["msg"] == "WebSocket connected"
            # the current step is replayed to late subscribers
            assert ws.receive_json()["run_id"] == run_id
            ws.send_text(json.dumps({"type": "command", "command": "stop"}))
            while ws.receive_json().get("type") != "info":
                pass
        assert _wait_for_status(client, run_id)["status"] == "stopped"


def test_interrupted_run_resumes_from_checkpoint(monkeypatch):
    _slow_steps(monkeypatch, 5)
    with TestClient(app) as client:
        run_id = client.post("/api/workflows", json={"productType": "curso de violão"}).json()["runId"]
        _wait_for_step(client, run_id)
    # shutdown leaves the run processing for the next startup

    _slow_steps(monkeypatch, 0)
    with TestClient(app) as client:
        body = _wait_for_status(client, run_id)
        assert body["status"] == "completed"
        assert set(body["results"]) == {f"step_{i}" for i in range(1, 11)}


def test_interrupted_run_without_checkpoint_is_marked_error():
    async def seed():
        await init_db()
        try:
            async with get_session() as session:
                run = await db_utils.create_workflow_run(session, "podcast", {}, total_steps=10)
                assert run.status == "idle"
                await db_utils.update_workflow_run(session, run.id, status="processing")
            return str(run.id)
        finally:
            await dispose_engine()

    run_id = asyncio.run(seed())
    with TestClient(app) as client:
        assert _wait_for_status(client, run_id)["status"] == "error"


class FakeSocket:
    def __init__(self, broken=False):
        self.broken = broken
        self.sent = []

    async def accept(self):
        pass

    async def send_json(self, data):
        self.sent.append(data)

    async def send_text(self, text):
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(text))


def test_ws_manager_replays_latest_event_and_drops_dead_sockets():
    async def inner():
        manager = WSManager()
        await manager.broadcast("run-1", {"msg": "Processando: Etapa 3", "step_id": 3})

        late = FakeSocket()
        await manager.connect("run-1", late)
        assert [m["msg"] for m in late.sent] == ["WebSocket connected", "Processando: Etapa 3"]

        dead = FakeSocket()
        await manager.connect("run-1", dead)
        dead.broken = True
        await manager.broadcast("run-1", {"msg": "Concluído: Etapa 3"})
        assert late.sent[-1]["msg"] == "Concluído: Etapa 3"
        assert manager._watchers["run-1"] == {late}

        manager.forget("run-1")
        fresh = FakeSocket()
        await manager.connect("run-1", fresh)
        assert [m["msg"] for m in fresh.sent] == ["WebSocket connected"]

    asyncio.run(inner())
