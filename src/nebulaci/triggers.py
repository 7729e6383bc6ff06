# triggers.py
# Event filter deciding whether a repository event runs the pipeline.
from __future__ import annotations

from dataclasses import dataclass
from fnmatch import fnmatch
from typing import Optional, Tuple

from .config import PipelineConfig
from .errors import ConfigurationError


PUSH = "push"
PULL_REQUEST = "pull_request"


@dataclass(frozen=True)
class TriggerRules:
    push_branches: Tuple[str, ...] = ("main",)
    pull_request_branches: Tuple[str, ...] = ("develop", "main", "release")

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "TriggerRules":
        return cls(
            push_branches=tuple(config.push_branches),
            pull_request_branches=tuple(config.pull_request_branches),
        )

    def should_run(self, event: str, branch: str) -> bool:
        """
        push: `branch` is the pushed branch.
        pull_request: `branch` is the PR's target (base) branch.
        Branch patterns may use shell globs ("release/*").
        """
        branch = _normalize(branch)
        if event == PUSH:
            patterns = self.push_branches
        elif event == PULL_REQUEST:
            patterns = self.pull_request_branches
        else:
            raise ConfigurationError(f"Unknown event {event!r}. Expected 'push' or 'pull_request'")
        return any(fnmatch(branch, p) for p in patterns)


def _normalize(ref: str) -> str:
    # refs/heads/main -> main
    prefix = "refs/heads/"
    return ref[len(prefix):] if ref.startswith(prefix) else ref


def should_run(event: str, branch: str, rules: Optional[TriggerRules] = None) -> bool:
    return (rules or TriggerRules()).should_run(event, branch)
