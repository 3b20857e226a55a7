"""Shared fakes for dispatcher and pipeline tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from kiln.cli.flags import Arguments
from kiln.errors import KilnError
from kiln.pipeline.outcome import Outcome


class FakeCommand:
    """Command double that records executions."""

    def __init__(
        self,
        result: int = 0,
        error: KilnError | None = None,
        on_execute: Callable[[], None] | None = None,
    ) -> None:
        self.result = result
        self.error = error
        self.on_execute = on_execute
        self.calls = 0

    def execute(self) -> int:
        self.calls += 1
        if self.on_execute is not None:
            self.on_execute()
        if self.error is not None:
            raise self.error
        return self.result


class FakeStage:
    """Stage factory double matching one subcommand name."""

    def __init__(self, name: str, outcome: Outcome[Any], *, match_all: bool = False) -> None:
        self.name = name
        self.outcome = outcome
        self.match_all = match_all
        self.matches_calls: list[Arguments] = []
        self.subcommand_calls: list[Arguments] = []
        self.loaded: list[Any] = []

    def matches(self, args: Arguments) -> bool:
        self.matches_calls.append(args)
        return self.match_all or args.subcommand == self.name

    def subcommand(self, args: Arguments) -> Outcome[Any]:
        self.subcommand_calls.append(args)
        return self.outcome

    def load_config(self, config: Any) -> None:
        self.loaded.append(config)


@pytest.fixture
def in_tmp(tmp_path, monkeypatch):
    """Run the test with the temporary directory as working directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path
