from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from iaboard.settings import get_settings
from iaboard.utils import fileutils
from iaboard.utils.logging import get_logger

router = APIRouter(tags=["downloads"])
LOGGER = get_logger(__name__)


def _listing() -> Dict[str, Any]:
    files = fileutils.list_downloads()
    return {
        "success": True,
        "files": files,
        "count": len(files),
        "totalSize": sum(f["size"] for f in files),
    }


def _resolve(filename: str, root: Optional[Path] = None) -> Path:
    try:
        path = fileutils.safe_join(root or get_settings().downloads_root, filename)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid file path")
    if not path.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    return path


@router.get("/api/downloads")
async def list_downloads() -> Dict[str, Any]:
    return _listing()


@router.get("/api/files")
async def list_files() -> Dict[str, Any]:
    return _listing()


# Registered before the {filename} route so "clear" is not taken as a name
@router.delete("/api/downloads/clear")
async def clear_downloads() -> Dict[str, Any]:
    removed = fileutils.clear_downloads()
    LOGGER.info("Cleared %d downloads", removed)
    return {"success": True, "removed": removed}


@router.delete("/api/downloads/{filename}")
async def delete_download(filename: str) -> Dict[str, Any]:
    path = _resolve(filename)
    path.unlink()
    LOGGER.info("Deleted download %s", filename)
    return {"success": True, "message": f"{filename} removido"}


@router.delete("/api/files/{filename}")
async def delete_file(filename: str) -> Dict[str, Any]:
    return await delete_download(filename)


@router.get("/api/files/{filename}/download")
async def download_file(filename: str) -> FileResponse:
    return serve_download(filename)


@router.get("/downloads/{filename}")
def serve_download(filename: str) -> FileResponse:
    path = _resolve(filename)
    return FileResponse(path, filename=path.name)


@router.get("/ai-content/{filename}")
def serve_generated(filename: str) -> FileResponse:
    return FileResponse(_resolve(filename, get_settings().content_root))
