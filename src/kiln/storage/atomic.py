"""Whole-file JSON reads and replace-on-success writes."""

from __future__ import annotations

from pathlib import Path
import json
import os
import tempfile
from typing import Any


def atomic_write_text(path: Path, content: str) -> None:
    """Replace `path` with `content`; readers see the old or the new file, never a mix."""

    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    )
    staged = Path(handle.name)
    try:
        with handle:
            handle.write(content)
        os.replace(staged, path)
    finally:
        staged.unlink(missing_ok=True)


def atomic_write_json(path: Path, payload: Any, indent: int = 2) -> None:
    """Write `payload` as indented JSON, keeping its own key order."""

    atomic_write_text(path, json.dumps(payload, indent=indent) + "\n")


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))
