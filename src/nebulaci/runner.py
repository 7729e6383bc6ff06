# runner.py
from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Optional, Protocol

from .config import PipelineConfig
from .errors import (
    EXIT_CONFIGURATION,
    ConfigurationError,
    StepFailure,
    ToolchainError,
    failure_for,
)
from .model import ExecutionResult, PipelinePlan, PlanStep, PlatformTarget, StepResult
from .planner import resolve_plan
from .ui.console import Console, get_console


TOOL_HINTS = {
    "rustup": "Install rustup from https://rustup.rs or fix PATH.",
    "cargo": "Install the Rust toolchain (rustup includes cargo) or fix PATH.",
    "rustc": "Install the Rust toolchain (rustup includes rustc) or fix PATH.",
    "git": "Install Git or fix PATH.",
    "git-lfs": "Install Git LFS (https://git-lfs.com) and run `git lfs install`.",
}

# Keep failure reports readable
OUTPUT_TAIL = 4000


# ----------------------------------------------------------------------
# Execution environment
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class CommandOutcome:
    returncode: int
    stdout: str = ""
    stderr: str = ""


class CommandRunner(Protocol):
    def run(self, command: str, cwd: Path, env: Mapping[str, str]) -> CommandOutcome:
        ...


class ShellRunner:
    """Runs commands through the platform shell and captures their output."""

    def run(self, command: str, cwd: Path, env: Mapping[str, str]) -> CommandOutcome:
        proc = subprocess.run(
            command,
            shell=True,
            cwd=str(cwd),
            env=dict(env),
            text=True,
            capture_output=True,
        )
        return CommandOutcome(proc.returncode, proc.stdout or "", proc.stderr or "")

    def ensure_tool(self, tool: str) -> None:
        if shutil.which(tool) is None:
            raise FileNotFoundError(tool)


def _check_tools(runner, plan: PipelinePlan, step: PlanStep) -> None:
    ensure = getattr(runner, "ensure_tool", None)
    if ensure is None:
        return
    for tool in step.requires:
        try:
            ensure(tool)
        except FileNotFoundError:
            raise ToolchainError(
                platform=plan.platform.value,
                step=step.name,
                cmd=tool,
                hint=TOOL_HINTS.get(tool, f"Install {tool} or fix PATH."),
                details={"tool": tool},
            ) from None


def _run_step(runner, plan: PipelinePlan, step: PlanStep, repo_root: Path) -> CommandOutcome:
    """Run every command of a step in order. Raises the step kind's failure on the first non-zero exit."""
    env = os.environ.copy()
    env.update(step.env)

    stdout, stderr = [], []
    for cmd in step.commands:
        try:
            outcome = runner.run(cmd, repo_root, env)
        except OSError as e:
            # Could not start the command at all (bad cwd, no shell)
            raise ToolchainError(
                platform=plan.platform.value,
                step=step.name,
                cmd=cmd,
                stdout="".join(stdout)[-OUTPUT_TAIL:],
                stderr="".join(stderr)[-OUTPUT_TAIL:],
                hint=f"Check that {repo_root} exists and the shell can start there.",
                details={"error": str(e)},
            ) from e
        stdout.append(outcome.stdout)
        stderr.append(outcome.stderr)
        if outcome.returncode != 0:
            raise failure_for(step.kind)(
                platform=plan.platform.value,
                step=step.name,
                cmd=cmd,
                exit_code=outcome.returncode,
                stdout="".join(stdout)[-OUTPUT_TAIL:],
                stderr="".join(stderr)[-OUTPUT_TAIL:],
            )
    return CommandOutcome(0, "".join(stdout), "".join(stderr))


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def execute(
    plan: PipelinePlan,
    *,
    runner: Optional[CommandRunner] = None,
    repo_root: str | Path = ".",
    console: Optional[Console] = None,
) -> ExecutionResult:
    """
    Run the plan's steps strictly in order. Fail-fast: the first failing step
    ends the run and every later step is recorded as skipped.
    """
    runner = runner or ShellRunner()
    console = console or get_console()
    root = Path(repo_root).resolve()
    result = ExecutionResult(platform=plan.platform)

    remaining = list(plan.steps)
    while remaining:
        step = remaining.pop(0)
        console.print_step(step.name, step.commands)
        try:
            _check_tools(runner, plan, step)
            outcome = _run_step(runner, plan, step, root)
        except StepFailure as e:
            result.steps.append(StepResult(step.name, "failed", e.exit_code, e.stdout, e.stderr))
            result.error = e
            console.print_failure(e)
            break
        result.steps.append(StepResult(step.name, "ok", 0, outcome.stdout, outcome.stderr))
        console.print_success(step.name, outcome.stdout + outcome.stderr)

    for step in remaining:
        result.steps.append(StepResult(step.name, "skipped"))

    return result


def run(
    platform: PlatformTarget | str,
    strict_lint: Optional[bool] = None,
    *,
    features: Iterable[str] | str | None = None,
    config: Optional[PipelineConfig] = None,
    runner: Optional[CommandRunner] = None,
    repo_root: str | Path = ".",
    console: Optional[Console] = None,
) -> int:
    """Resolve and execute one platform's pipeline. Returns the process exit code."""
    console = console or get_console()
    config = config or PipelineConfig()
    try:
        plan = resolve_plan(platform, features, strict_lint=strict_lint, config=config)
    except ConfigurationError as e:
        console.print_error("Invalid configuration", str(e))
        return EXIT_CONFIGURATION

    console.print_run_started(
        project=config.project,
        platform=plan.platform.value,
        step_count=len(plan),
    )
    console.print_plan(plan)

    result = execute(plan, runner=runner, repo_root=repo_root, console=console)
    console.print_results(result.statuses(), failure=result.error)
    return result.exit_code
