"""Async file helpers used by the JSON-backed stores."""

import os
from pathlib import Path
from typing import Optional

import aiofiles

from presales_engine.components.base.exceptions import PersistenceFailureError


async def atomic_write_text(path: Path, content: str, component: str = "storage") -> None:
    """Write `content` to `path` so readers never observe a partial file.

    The text goes to a sibling temp file which then replaces the target.
    """
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(content)
        os.replace(tmp_path, path)
    except OSError as e:
        raise PersistenceFailureError(
            f"Failed to write {path.name}: {e}", component=component, details={"path": str(path)}
        )


async def read_text(path: Path, component: str = "storage") -> Optional[str]:
    """Read a file, returning None when it does not exist."""
    if not path.exists():
        return None
    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            return await f.read()
    except OSError as e:
        raise PersistenceFailureError(
            f"Failed to read {path.name}: {e}", component=component, details={"path": str(path)}
        )
