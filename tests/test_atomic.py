"""Tests for whole-file JSON storage helpers."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from kiln.storage.atomic import atomic_write_json, read_json


def test_write_creates_parents_and_leaves_no_temp_files(tmp_path: Path) -> None:
    target = tmp_path / "build" / "compile_commands.json"

    atomic_write_json(target, [{"file": "b.c", "directory": "/src"}])

    assert read_json(target) == [{"file": "b.c", "directory": "/src"}]
    assert list(target.parent.iterdir()) == [target]


def test_failed_replace_keeps_old_content(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    target = tmp_path / "compile_commands.json"
    target.write_text("[]\n", encoding="utf-8")

    def refuse(src, dst) -> None:
        raise PermissionError(13, "Permission denied", str(dst))

    monkeypatch.setattr(os, "replace", refuse)

    with pytest.raises(PermissionError):
        atomic_write_json(target, [{"file": "a.c"}])
    assert target.read_text(encoding="utf-8") == "[]\n"
    assert list(tmp_path.iterdir()) == [target]
