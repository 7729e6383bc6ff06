from __future__ import annotations

from nebulaci.config import PipelineConfig
from nebulaci.dsl import sh
from nebulaci.errors import (
    EXIT_CONFIGURATION,
    EXIT_LINT,
    EXIT_TEST,
    EXIT_TOOLCHAIN,
    LintViolation,
    TestFailure,
    ToolchainError,
)
from nebulaci.planner import resolve_plan
from nebulaci.runner import OUTPUT_TAIL, CommandOutcome, execute, run
from nebulaci.ui.console import Console


# -----------------------------------------------------------
# execute()
# -----------------------------------------------------------
def test_execute_runs_steps_in_order(scripted_runner, tmp_path):
    runner = scripted_runner()
    result = execute(resolve_plan("linux", {"base"}), runner=runner, repo_root=tmp_path)

    assert result.ok
    assert result.exit_code == 0
    assert result.statuses() == {"toolchain-sync": "ok", "lint": "ok", "test": "ok"}
    assert runner.commands == [
        "rustup update --no-self-update",
        "rustup component add clippy",
        'cargo clippy --features "llama" -- -D warnings',
        'cargo test --features "llama llama-build" -- --nocapture',
    ]


def test_execute_fails_fast(scripted_runner, tmp_path):
    runner = scripted_runner(fail_on="rustup component")
    result = execute(resolve_plan("macos"), runner=runner, repo_root=tmp_path)

    assert not result.ok
    assert result.failed_step == "toolchain-sync"
    assert isinstance(result.error, ToolchainError)
    assert result.exit_code == EXIT_TOOLCHAIN
    assert result.statuses() == {"toolchain-sync": "failed", "lint": "skipped", "test": "skipped"}
    # nothing after the failing command ran
    assert runner.commands[-1] == "rustup component add clippy"
    assert not any("cargo" in c for c in runner.commands)


def test_lint_finding_is_lint_violation(scripted_runner, tmp_path):
    runner = scripted_runner(fail_on="cargo clippy", returncode=101)
    result = execute(resolve_plan("linux"), runner=runner, repo_root=tmp_path)

    assert isinstance(result.error, LintViolation)
    assert result.error.exit_code == 101
    assert result.failed_step == "lint"
    assert result.exit_code == EXIT_LINT
    assert result.statuses()["test"] == "skipped"


def test_failure_carries_output_and_context(scripted_runner, tmp_path):
    runner = scripted_runner(fail_on="cargo test")
    result = execute(resolve_plan("windows"), runner=runner, repo_root=tmp_path)

    err = result.error
    assert isinstance(err, TestFailure)
    assert err.platform == "windows"
    assert err.step == "test"
    assert err.cmd == 'cargo test --features "llama" -- --nocapture'
    assert "test result: FAILED" in err.output
    assert "platform=windows" in str(err)
    assert len(err.stdout) <= OUTPUT_TAIL


def test_missing_tool_is_toolchain_error(scripted_runner, tmp_path):
    runner = scripted_runner(missing_tools={"rustup"})
    result = execute(resolve_plan("linux"), runner=runner, repo_root=tmp_path)

    assert isinstance(result.error, ToolchainError)
    assert result.error.details == {"tool": "rustup"}
    assert "rustup.rs" in result.error.hint
    assert runner.commands == []


def test_diagnostic_failure_is_plain_step_failure(scripted_runner, tmp_path):
    runner = scripted_runner(fail_on="cpuinfo")
    plan = resolve_plan("linux", config=PipelineConfig(include_diagnostics=True))
    result = execute(plan, runner=runner, repo_root=tmp_path)

    assert result.failed_step == "cpu-info"
    assert result.exit_code == 1
    assert result.statuses()["test"] == "skipped"


def test_step_env_is_passed_through(tmp_path):
    seen = {}

    class EnvRunner:
        def run(self, command, cwd, env):
            seen.update(env)
            seen["_cwd"] = cwd
            return CommandOutcome(0)

    plan = resolve_plan("linux", catalog=[sh("env", "echo $RUST_BACKTRACE", env={"RUST_BACKTRACE": "1"})])
    assert execute(plan, runner=EnvRunner(), repo_root=tmp_path).ok
    assert seen["RUST_BACKTRACE"] == "1"
    assert seen["_cwd"] == tmp_path.resolve()


# -----------------------------------------------------------
# run(): end-to-end scenarios
# -----------------------------------------------------------
def test_run_linux_success(scripted_runner, tmp_path, capsys):
    runner = scripted_runner()
    code = run("linux", True, features={"base"}, runner=runner, repo_root=tmp_path)

    assert code == 0
    assert 'cargo test --features "llama llama-build" -- --nocapture' in runner.commands
    out = capsys.readouterr().out
    assert "RUN STARTED" in out
    assert "test: SUCCESS" in out


def test_run_windows_test_failure(scripted_runner, tmp_path, capsys):
    runner = scripted_runner(fail_on="cargo test")
    code = run("windows", True, features={"base"}, runner=runner, repo_root=tmp_path)

    assert code == EXIT_TEST
    assert runner.commands[-1] == 'cargo test --features "llama" -- --nocapture'
    out = capsys.readouterr().out
    assert "STEP FAILED: test" in out
    assert "test: FAILED" in out


def test_run_unknown_platform_starts_nothing(scripted_runner, tmp_path, capsys):
    runner = scripted_runner()
    code = run("solaris", True, runner=runner, repo_root=tmp_path)

    assert code == EXIT_CONFIGURATION
    assert runner.commands == []
    assert "Unknown platform 'solaris'" in capsys.readouterr().err


def test_run_non_strict(scripted_runner, tmp_path):
    runner = scripted_runner()
    assert run("macos", False, runner=runner, repo_root=tmp_path) == 0
    assert 'cargo clippy --features "llama"' in runner.commands


def test_results_name_failure_kind(scripted_runner, tmp_path, capsys):
    run("linux", True, runner=scripted_runner(fail_on="cargo clippy"), repo_root=tmp_path)
    out = capsys.readouterr().out
    assert "lint: FAILED (lint_violation)" in out
    assert "test: SKIPPED" in out


def test_debug_prints_successful_step_output(scripted_runner, tmp_path, capsys):
    run("macos", True, runner=scripted_runner(), repo_root=tmp_path, console=Console(debug=True))
    assert "ok: rustup component add clippy" in capsys.readouterr().out


def test_quiet_console_hides_successful_step_output(scripted_runner, tmp_path, capsys):
    run("macos", True, runner=scripted_runner(), repo_root=tmp_path)
    assert "ok: rustup component add clippy" not in capsys.readouterr().out
