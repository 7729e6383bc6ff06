from __future__ import annotations

import os

import pytest

from nebulaci.runner import CommandOutcome
from nebulaci.ui.console import Console, set_console


class ScriptedRunner:
    """
    Stands in for the shell. Records every command and fails the first one
    containing `fail_on`.
    """

    def __init__(self, fail_on: str | None = None, returncode: int = 1, missing_tools=()):
        self.fail_on = fail_on
        self.returncode = returncode
        self.missing_tools = set(missing_tools)
        self.commands: list[str] = []

    def run(self, command, cwd, env):
        self.commands.append(command)
        if self.fail_on and self.fail_on in command:
            return CommandOutcome(self.returncode, "running 3 tests\n", "test result: FAILED\n")
        return CommandOutcome(0, f"ok: {command}\n", "")

    def ensure_tool(self, tool):
        if tool in self.missing_tools:
            raise FileNotFoundError(tool)


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    """No NEBULACI_* leakage from the host and a fresh console per test."""
    for key in list(os.environ):
        if key.startswith("NEBULACI_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    set_console(Console())


@pytest.fixture
def scripted_runner():
    return ScriptedRunner
