from __future__ import annotations

import pytest

from nebulaci.dsl import sh, toolchain_step
from nebulaci.errors import EXIT_TOOLCHAIN, ToolchainError
from nebulaci.planner import resolve_plan
from nebulaci.runner import ShellRunner, execute


# -----------------------------------------------------------
# Real shell execution
# -----------------------------------------------------------
def test_shell_runner_captures_output(tmp_path):
    outcome = ShellRunner().run("echo hi", tmp_path, {})
    assert outcome.returncode == 0
    assert outcome.stdout.strip() == "hi"


def test_shell_pipeline_stops_at_failing_step(tmp_path):
    catalog = [sh("a", "echo hi"), sh("b", "exit 3"), sh("c", "echo no")]
    result = execute(resolve_plan("linux", catalog=catalog), runner=ShellRunner(), repo_root=tmp_path)

    assert not result.ok
    assert result.failed_step == "b"
    assert result.error.exit_code == 3
    assert result.statuses() == {"a": "ok", "b": "failed", "c": "skipped"}
    assert result.steps[0].stdout.strip() == "hi"


def test_ensure_tool_missing():
    with pytest.raises(FileNotFoundError):
        ShellRunner().ensure_tool("nebulaci-no-such-tool-xyz")


def test_missing_tool_reported_before_running(tmp_path):
    catalog = [toolchain_step("sync", "echo never", requires=("nebulaci-no-such-tool-xyz",))]
    result = execute(resolve_plan("linux", catalog=catalog), runner=ShellRunner(), repo_root=tmp_path)

    assert isinstance(result.error, ToolchainError)
    assert result.error.details == {"tool": "nebulaci-no-such-tool-xyz"}
    assert result.error.__suppress_context__


def test_missing_repo_root_is_reported_per_step(tmp_path):
    catalog = [sh("a", "echo hi"), sh("b", "echo later")]
    result = execute(
        resolve_plan("linux", catalog=catalog),
        runner=ShellRunner(),
        repo_root=tmp_path / "missing",
    )

    err = result.error
    assert isinstance(err, ToolchainError)
    assert err.step == "a"
    assert err.platform == "linux"
    assert err.cmd == "echo hi"
    assert "error" in err.details
    assert isinstance(err.__cause__, OSError)
    assert result.statuses() == {"a": "failed", "b": "skipped"}
    assert result.exit_code == EXIT_TOOLCHAIN
