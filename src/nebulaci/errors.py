# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


EXIT_OK = 0
EXIT_STEP_FAILED = 1
EXIT_CONFIGURATION = 2
EXIT_TOOLCHAIN = 3
EXIT_LINT = 4
EXIT_TEST = 5
EXIT_INTERRUPTED = 130


# ----------------------------------------------------------------------
# Resolution-time errors
# ----------------------------------------------------------------------

class ConfigurationError(ValueError):
    """Unrecognized platform, feature flag or configuration value."""
    exit_code_for_run = EXIT_CONFIGURATION


class InvalidPlatformError(ConfigurationError):
    def __init__(self, value: Any):
        self.value = value
        super().__init__(
            f"Unknown platform {value!r}. Expected one of: linux, macos, windows"
        )


class InvalidFeatureError(ConfigurationError):
    def __init__(self, flags, known):
        self.flags = sorted(flags)
        self.known = sorted(known)
        super().__init__(
            f"Unknown feature flag(s) {self.flags}. Known flags: {self.known}"
        )


# ----------------------------------------------------------------------
# Execution-time errors
# ----------------------------------------------------------------------

@dataclass
class StepFailure(Exception):
    """
    Structured step failure with enough context for:
      - clean CLI output
      - debugging without full tracebacks
    """
    platform: str
    step: str
    cmd: str
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    hint: Optional[str] = None
    details: Dict[str, str] = field(default_factory=dict)

    kind = "step_failed"
    exit_code_for_run = EXIT_STEP_FAILED

    def __str__(self) -> str:
        lines = [
            f"{self.kind}: step '{self.step}' failed"
            + (f" (exit={self.exit_code})" if self.exit_code is not None else ""),
            f"platform={self.platform}",
            f"cmd={self.cmd}",
        ]
        if self.hint:
            lines.append(f"hint={self.hint}")
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)

    @property
    def output(self) -> str:
        """Captured output, stdout first."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class ToolchainError(StepFailure):
    """Environment setup failed or a required tool is missing."""
    kind = "toolchain_error"
    exit_code_for_run = EXIT_TOOLCHAIN


class LintViolation(StepFailure):
    """Static analysis reported a finding in strict mode."""
    kind = "lint_violation"
    exit_code_for_run = EXIT_LINT


class TestFailure(StepFailure):
    """A test case failed or the test process crashed."""
    __test__ = False  # keep pytest from collecting this class
    kind = "test_failure"
    exit_code_for_run = EXIT_TEST


FAILURES_BY_KIND = {
    "checkout": ToolchainError,
    "toolchain": ToolchainError,
    "lint": LintViolation,
    "test": TestFailure,
}


def failure_for(kind: str) -> type:
    return FAILURES_BY_KIND.get(kind, StepFailure)
