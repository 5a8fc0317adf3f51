import os
from pathlib import Path

from fastapi.testclient import TestClient

from iaboard import settings as settings_module
from iaboard.main import app


def test_health_reports_running():
    with TestClient(app) as client:
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "IA Board API is running"


def test_ai_health_lists_providers():
    with TestClient(app) as client:
        body = client.get("/api/ai/health").json()
        assert body["llmMode"] == "mock"
        assert body["providers"]["templates"] is True
        assert body["providers"]["openai"] is False


def test_generate_text_uses_templates_in_mock_mode():
    with TestClient(app) as client:
        resp = client.post(
            "/api/ai/generate",
            json={"type": "text", "prompt": "crie um funil de sales para cursos online"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["provider"] == "Template Engine"
        assert "Funil de Vendas" in body["content"]
        assert body["metadata"]["fallback"] is False


def test_generate_rejects_missing_prompt_and_unknown_type():
    with TestClient(app) as client:
        missing = client.post("/api/ai/generate", json={"type": "text", "prompt": "  "})
        assert missing.status_code == 400
        assert missing.json() == {"success": False, "error": "Type and prompt are required"}

        unknown = client.post("/api/ai/generate", json={"type": "hologram", "prompt": "oi"})
        assert unknown.status_code == 400
        assert unknown.json()["error"] == "Unsupported content type"


def test_generate_image_without_renderer_fails_cleanly():
    with TestClient(app) as client:
        resp = client.post("/api/ai/generate", json={"type": "image", "prompt": "logo tech"})
        assert resp.status_code == 500
        assert resp.json()["error"] == "Local media rendering disabled"


def test_execute_wraps_prompt_and_reports_module():
    with TestClient(app) as client:
        resp = client.post("/api/ai/execute", json={"prompt": "estratégia de marketing para padaria"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["result"] == body["content"]
        assert body["metadata"]["module"] == "ia-total"
        assert body["metadata"]["provider"] == "Template Engine"

        empty = client.post("/api/ai/execute", json={"prompt": ""})
        assert empty.status_code == 400


def test_module_execute_writes_html_download():
    with TestClient(app) as client:
        resp = client.post(
            "/api/ai/module/execute",
            json={"module": "ia-copy", "prompt": "curso de confeitaria", "parameters": {"niche": "doces"}},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "completed"
        filename = body["file"]["name"]
        assert filename.startswith("copy-") and filename.endswith(".html")

        root = Path(os.environ["DOWNLOADS_ROOT"])
        html = (root / filename).read_text(encoding="utf-8")
        assert "IA Copy - Gerado por IA Board" in html

        listing = client.get("/api/downloads").json()
        assert listing["count"] == 1
        assert listing["files"][0]["module"] == "IA Copy"


def test_module_execute_unknown_module_falls_back_to_text():
    with TestClient(app) as client:
        resp = client.post("/api/ai/module/execute", json={"module": "ia-misterio", "prompt": "teste"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["metadata"]["module"] == "ia-misterio"
        assert "file" not in body


def test_video_module_reports_media_error_when_rendering_disabled():
    with TestClient(app) as client:
        resp = client.post("/api/modules/ia-video/execute", json={"prompt": "vsl de emagrecimento"})
        assert resp.status_code == 200
        body = resp.json()
        assert "media" not in body
        assert body["metadata"]["mediaError"] == "Local media rendering disabled"


def test_modules_catalog_filters_and_404s():
    with TestClient(app) as client:
        all_modules = client.get("/api/modules").json()
        assert all_modules["total"] == 8

        midia = client.get("/api/modules", params={"category": "midia"}).json()
        assert {m["id"] for m in midia["modules"]} == {"ia-video", "ia-voz"}

        assert client.get("/api/modules/ia-copy").json()["name"] == "IA Copy"
        assert client.get("/api/modules/nope").status_code == 404
        assert client.post("/api/modules/nope/execute", json={"prompt": "x"}).status_code == 404
        assert client.post("/api/modules/ia-copy/execute", json={"prompt": " "}).status_code == 400


def test_suprema_builds_prompt_from_project_data():
    with TestClient(app) as client:
        resp = client.post(
            "/api/ai/suprema/execute-module",
            json={
                "moduleId": "ia-produto",
                "projectData": {"name": "Mentoria", "niche": "finanças"},
                "learningMode": True,
            },
        )
        body = resp.json()
        assert body["success"] is True
        assert body["moduleId"] == "ia-produto"
        assert body["metadata"]["learningMode"] is True
        assert body["metadata"]["file"]["type"] == "html"

        missing = client.post("/api/ai/suprema/execute-module", json={"moduleId": "nope", "prompt": "x"})
        assert missing.json()["metadata"]["error"] == "Módulo não encontrado"


def test_llm_generate_joins_messages():
    with TestClient(app) as client:
        resp = client.post(
            "/api/llm/generate",
            json={
                "model": "gpt-4o",
                "messages": [
                    {"role": "system", "content": "Seja breve."},
                    {"role": "user", "content": "email sequence para lançamento"},
                ],
            },
        )
        body = resp.json()
        assert body["success"] is True
        assert body["model"] == "gpt-4o"
        assert "Sequência de E-mail" in body["content"]

        assert client.post("/api/llm/generate", json={"messages": []}).status_code == 400


def test_tickets_types_stages_and_processing():
    with TestClient(app) as client:
        types = client.get("/api/maquina-milionaria/types").json()["types"]
        assert [t["tipo"] for t in types] == [
            "copy", "video", "funil", "estrategia", "campanha", "design", "analise"
        ]
        stages = client.get("/api/maquina-milionaria/stages/desconhecido").json()["stages"]
        assert stages == client.get("/api/maquina-milionaria/stages/copy").json()["stages"]

        resp = client.post(
            "/api/maquina-milionaria/tickets",
            json={"tipo": "video", "titulo": "Curso de Inglês", "descricao": "VSL de 10 minutos"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["metadata"] == {"tipo": "video", "provider": "mock", "fallback": False}
        assert [f["nome"] for f in body["arquivos"]] == ["roteiro_vsl.txt", "cronograma_producao.txt"]

        assert client.post(
            "/api/maquina-milionaria/tickets", json={"tipo": "copy", "titulo": ""}
        ).status_code == 422


def test_canvas_node_lifecycle():
    with TestClient(app) as client:
        created = client.post(
            "/api/canvas/nodes",
            json={"moduleId": "ia-copy", "title": "Headlines", "x": 10, "y": 20},
        )
        assert created.status_code == 201
        node = created.json()["node"]
        assert node["position"] == {"x": 10.0, "y": 20.0}
        assert node["status"] == "idle"

        updated = client.put(f"/api/canvas/nodes/{node['id']}", json={"status": "completed", "x": 99})
        assert updated.json()["node"]["status"] == "completed"
        assert updated.json()["node"]["position"]["x"] == 99.0

        assert client.put("/api/canvas/nodes/missing", json={"title": "x"}).status_code == 404
        assert client.put(f"/api/canvas/nodes/{node['id']}", json={"status": "exploded"}).status_code == 422

        assert len(client.get("/api/canvas/nodes").json()["nodes"]) == 1
        assert client.delete(f"/api/canvas/nodes/{node['id']}").json()["success"] is True
        assert client.get("/api/canvas/nodes").json()["nodes"] == []


def test_project_crud():
    with TestClient(app) as client:
        created = client.post(
            "/api/projects", json={"title": "Lançamento", "description": "demo", "productType": "curso"}
        )
        assert created.status_code == 201
        project_id = created.json()["project"]["id"]

        listing = client.get("/api/projects").json()
        assert listing["total"] == 1
        assert listing["projects"][0]["productType"] == "curso"

        assert client.get(f"/api/projects/{project_id}").json()["title"] == "Lançamento"
        assert client.delete(f"/api/projects/{project_id}").json()["success"] is True
        assert client.get(f"/api/projects/{project_id}").status_code == 404
        assert client.delete(f"/api/projects/{project_id}").status_code == 404


def test_admin_api_key_guards_api_routes(monkeypatch):
    monkeypatch.setenv("ADMIN_API_KEY", "secret")
    settings_module.get_settings.cache_clear()
    with TestClient(app) as client:
        denied = client.get("/api/health")
        assert denied.status_code == 401
        assert denied.json() == {"detail": "Invalid or missing API Key"}

        allowed = client.get("/api/health", headers={"X-API-Key": "secret"})
        assert allowed.status_code == 200


def test_tokens_status_lists_tracked_services():
    with TestClient(app) as client:
        services = client.get("/api/tokens/status").json()["services"]
        assert services["stability"]["tokensLeft"] == 100
        assert services["openai"]["service"] == "OpenAI"
