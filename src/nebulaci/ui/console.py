"""Console output formatting utilities for nebulaci."""

from __future__ import annotations

import sys
from typing import Optional, Sequence


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
                   and the captured output of every command
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_run_started(
        self,
        project: str,
        platform: str,
        step_count: int,
    ) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Project: {project}")
        print(f"Platform: {platform}")
        print(f"Steps: {step_count}")
        print()

    def print_plan(self, plan) -> None:
        """Print the resolved steps of a plan."""
        self.print_header(f"PLAN ({plan.platform.value}, {plan.platform.runner_label})")
        for step in plan.steps:
            features = ", ".join(step.features)
            suffix = f" [{features}]" if features else ""
            print(f"  {step.name}{suffix}")
            for cmd in step.commands:
                print(f"      $ {cmd}")

    def print_step(self, name: str, commands: Sequence[str] = ()) -> None:
        """Print step start message."""
        print(f"\nSTEP: {name}")
        if self.debug:
            for cmd in commands:
                print(f"[DEBUG] $ {cmd}", file=sys.stderr)

    def print_success(self, name: str, output: str = "") -> None:
        """Print success message, plus the step's output in debug mode."""
        print("STATUS: success")
        if self.debug and output:
            print(output.rstrip())

    def print_failure(self, failure) -> None:
        """
        Print a step failure.

        Args:
            failure: StepFailure carrying step, exit code, hint and output
        """
        print(f"STEP FAILED: {failure.step}")
        print(f"Platform: {failure.platform}")
        if failure.exit_code is not None:
            print(f"Exit code: {failure.exit_code}")
        print(f"Command: {failure.cmd}")
        if failure.hint:
            print(f"Hint: {failure.hint}")
        output = failure.output
        if not output:
            return
        if self.debug:
            print(output)
        else:
            # Last lines usually hold the compiler / test summary
            tail = output.rstrip().splitlines()[-20:]
            print("Output (last lines):")
            for line in tail:
                print(f"  {line}")

    def print_results(self, results: dict[str, str], failure=None) -> None:
        """
        Print final results summary.

        Args:
            results: step name -> "ok" | "failed" | "skipped"
            failure: StepFailure of the failed step, shown next to it
        """
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for step, status in results.items():
            status_display = status.upper() if status != "ok" else "SUCCESS"
            if failure is not None and step == failure.step:
                status_display += f" ({failure.kind})"
            print(f"  {step}: {status_display}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
