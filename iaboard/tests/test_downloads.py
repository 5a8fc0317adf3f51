import os
import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from iaboard.main import app
from iaboard.utils import fileutils


def _downloads() -> Path:
    root = Path(os.environ["DOWNLOADS_ROOT"])
    root.mkdir(parents=True, exist_ok=True)
    return root


def test_safe_join_rejects_escaping_paths(tmp_path):
    assert fileutils.safe_join(tmp_path, "a.txt") == (tmp_path / "a.txt").resolve()
    for bad in ("../evil.txt", "..", ".", "/etc/passwd"):
        with pytest.raises(ValueError):
            fileutils.safe_join(tmp_path, bad)


def test_classify_module_by_filename():
    assert fileutils.classify_module("copy-123.html") == "IA Copy"
    assert fileutils.classify_module("video-audio.mp4") == "IA Vídeo"
    assert fileutils.classify_module("produto_abc.md") == "IA Produto"
    assert fileutils.classify_module("random.txt") == "IA Board"


def test_listing_is_newest_first_and_skips_hidden_files():
    root = _downloads()
    (root / "old-copy.html").write_text("a", encoding="utf-8")
    time.sleep(0.02)
    (root / "new-documento.txt").write_text("bbb", encoding="utf-8")
    (root / ".hidden").write_text("x", encoding="utf-8")

    with TestClient(app) as client:
        body = client.get("/api/downloads").json()
        assert [f["name"] for f in body["files"]] == ["new-documento.txt", "old-copy.html"]
        assert body["count"] == 2
        assert body["totalSize"] == 4
        first = body["files"][0]
        assert first["type"] == "txt"
        assert first["module"] == "IA Documento"
        assert first["url"] == "/downloads/new-documento.txt"
        assert client.get("/api/files").json() == body


def test_download_served_as_attachment():
    (_downloads() / "plano.md").write_text("# Plano", encoding="utf-8")
    with TestClient(app) as client:
        resp = client.get("/downloads/plano.md")
        assert resp.status_code == 200
        assert resp.text == "# Plano"
        assert 'filename="plano.md"' in resp.headers["content-disposition"]

        assert client.get("/api/files/plano.md/download").text == "# Plano"
        assert client.get("/downloads/nao-existe.md").status_code == 404


def test_generated_media_served_from_content_root():
    content = Path(os.environ["CONTENT_ROOT"])
    content.mkdir(parents=True, exist_ok=True)
    (content / "ai_img_1.png").write_bytes(b"\x89PNG")
    with TestClient(app) as client:
        resp = client.get("/ai-content/ai_img_1.png")
        assert resp.status_code == 200
        assert resp.content == b"\x89PNG"
        assert client.get("/ai-content/plano.md").status_code == 404


def test_delete_and_clear():
    root = _downloads()
    for name in ("a.txt", "b.txt", "c.txt"):
        (root / name).write_text(name, encoding="utf-8")

    with TestClient(app) as client:
        resp = client.delete("/api/downloads/a.txt")
        assert resp.json() == {"success": True, "message": "a.txt removido"}
        assert not (root / "a.txt").exists()
        assert client.delete("/api/downloads/a.txt").status_code == 404

        assert client.delete("/api/files/b.txt").json()["success"] is True

        cleared = client.delete("/api/downloads/clear").json()
        assert cleared == {"success": True, "removed": 1}
        assert client.get("/api/downloads").json()["count"] == 0
