"""Compilation database entries: build, filter, merge and write."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
import shlex
from typing import Any

from kiln.citnames.semantic import CompilerCall
from kiln.config.schema import ContentConfig, FormatConfig
from kiln.storage.atomic import atomic_write_json, read_json


@dataclass(frozen=True, slots=True)
class Entry:
    """One compilation database entry, with absolute paths."""

    file: Path
    directory: Path
    arguments: tuple[str, ...]
    output: Path | None = None

    @classmethod
    def from_json(cls, payload: Any) -> Entry:
        if not isinstance(payload, dict):
            raise ValueError("Compilation database entry must be an object.")
        if "arguments" in payload:
            arguments = tuple(str(arg) for arg in payload["arguments"])
        elif "command" in payload:
            arguments = tuple(shlex.split(payload["command"]))
        else:
            raise ValueError("Compilation database entry needs 'arguments' or 'command'.")
        directory = Path(payload["directory"])
        output = payload.get("output")
        return cls(
            file=_absolute(Path(payload["file"]), directory),
            directory=directory,
            arguments=arguments,
            output=None if output is None else _absolute(Path(output), directory),
        )

    def to_json(self, fmt: FormatConfig) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "directory": str(self.directory),
            "file": str(self.file),
        }
        if fmt.command_as_array:
            payload["arguments"] = list(self.arguments)
        else:
            payload["command"] = shlex.join(self.arguments)
        if self.output is not None and not fmt.drop_output_field:
            payload["output"] = str(self.output)
        return payload


def _absolute(path: Path, directory: Path) -> Path:
    return path if path.is_absolute() else directory / path


def _is_within(path: Path, roots: Iterable[Path]) -> bool:
    return any(path.is_relative_to(root.absolute()) for root in roots)


def entries_from_call(call: CompilerCall) -> Iterator[Entry]:
    """Yield one entry per source file of a compiler call."""

    output = None if call.output is None else _absolute(call.output, call.working_dir)
    for source in call.sources:
        yield Entry(
            file=_absolute(source, call.working_dir),
            directory=call.working_dir,
            arguments=call.arguments,
            output=output,
        )


def _duplicate_key(entry: Entry, fields: str) -> tuple[Any, ...]:
    if fields == "file":
        return (entry.file,)
    if fields == "file_output":
        return (entry.file, entry.output)
    return (entry.file, entry.directory, entry.arguments, entry.output)


def filter_entries(entries: Iterable[Entry], content: ContentConfig) -> list[Entry]:
    """Apply source existence, include/exclude and duplicate filters."""

    seen: set[tuple[Any, ...]] = set()
    kept: list[Entry] = []
    for entry in entries:
        if content.include_only_existing_source and not entry.file.exists():
            continue
        if content.paths_to_include and not _is_within(entry.file, content.paths_to_include):
            continue
        if content.paths_to_exclude and _is_within(entry.file, content.paths_to_exclude):
            continue
        key = _duplicate_key(entry, content.duplicate_filter_fields)
        if key in seen:
            continue
        seen.add(key)
        kept.append(entry)
    return kept


def read_database(path: Path) -> list[Entry]:
    """Read an existing compilation database."""

    payload = read_json(path)
    if not isinstance(payload, list):
        raise ValueError(f"Compilation database {path} must contain a JSON array.")
    return [Entry.from_json(item) for item in payload]


def write_database(path: Path, entries: Iterable[Entry], fmt: FormatConfig) -> int:
    """Write entries atomically and return how many were written."""

    payload = [entry.to_json(fmt) for entry in entries]
    atomic_write_json(path, payload)
    return len(payload)
