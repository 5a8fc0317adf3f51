"""File helpers for the downloads and generated-media folders."""
from __future__ import annotations

import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from iaboard.settings import get_settings
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)

# First match wins, so "video" beats "audio" for names carrying both
_MODULE_BY_KEYWORD = [
    ("copy", "IA Copy"),
    ("produto", "IA Produto"),
    ("video", "IA Vídeo"),
    ("audio", "IA Voz"),
    ("documento", "IA Documento"),
]


def timestamp_ms() -> int:
    return int(time.time() * 1000)


def classify_module(filename: str) -> str:
    for keyword, module in _MODULE_BY_KEYWORD:
        if keyword in filename:
            return module
    return "IA Board"


def safe_join(root: Path, filename: str) -> Path:
    """Resolve ``filename`` inside ``root``; raises ValueError when it escapes."""
    root = root.resolve()
    full_path = (root / filename).resolve()
    try:
        full_path.relative_to(root)
    except ValueError:
        LOGGER.error("Path traversal detected: %s not in %s", full_path, root)
        raise ValueError(f"Invalid file path: {filename}")
    if full_path == root:
        raise ValueError(f"Invalid file path: {filename}")
    return full_path


def write_download(filename: str, content: str) -> Path:
    path = safe_join(get_settings().downloads_root, filename)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    LOGGER.info("Download written: %s (%d bytes)", path.name, path.stat().st_size)
    return path


def list_downloads() -> List[Dict[str, Any]]:
    root = get_settings().downloads_root
    files: List[Dict[str, Any]] = []
    if not root.exists():
        return files

    for path in root.iterdir():
        if not path.is_file() or path.name.startswith("."):
            continue
        stats = path.stat()
        files.append(
            {
                "id": path.name,
                "name": path.name,
                "type": path.suffix.lstrip(".").lower(),
                "size": stats.st_size,
                "url": f"/downloads/{path.name}",
                "createdAt": datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc).isoformat(),
                "module": classify_module(path.name),
                "_mtime": stats.st_mtime_ns,
            }
        )

    files.sort(key=lambda f: f["_mtime"], reverse=True)
    for f in files:
        f.pop("_mtime")
    return files


def clear_downloads() -> int:
    removed = 0
    root = get_settings().downloads_root
    if not root.exists():
        return removed
    for path in root.iterdir():
        if path.is_file():
            path.unlink()
            removed += 1
    return removed
