# model.py
from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from .errors import InvalidPlatformError, StepFailure


class PlatformTarget(str, Enum):
    """One of the operating-system environments a pipeline run targets."""
    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"

    @property
    def runner_label(self) -> str:
        return RUNNER_LABELS[self]

    @classmethod
    def parse(cls, value: "PlatformTarget | str") -> "PlatformTarget":
        """
        Accept a PlatformTarget, its name ("linux") or a hosted runner label
        ("ubuntu-latest"). Case-insensitive.
        """
        if isinstance(value, PlatformTarget):
            return value
        if not isinstance(value, str):
            raise InvalidPlatformError(value)

        key = value.strip().lower()
        for target in cls:
            if key == target.value or key == target.runner_label:
                return target
        raise InvalidPlatformError(value)

    @classmethod
    def current(cls) -> "PlatformTarget":
        if sys.platform.startswith("linux"):
            return cls.LINUX
        if sys.platform == "darwin":
            return cls.MACOS
        if sys.platform in ("win32", "cygwin"):
            return cls.WINDOWS
        raise InvalidPlatformError(sys.platform)

    def __str__(self) -> str:
        return self.value


RUNNER_LABELS: Dict[PlatformTarget, str] = {
    PlatformTarget.LINUX: "ubuntu-latest",
    PlatformTarget.MACOS: "macos-latest",
    PlatformTarget.WINDOWS: "windows-latest",
}


class FeatureSet(frozenset):
    """
    Set of capability flags for a lint or test invocation.

    Duplicates collapse and iteration is always sorted, so two FeatureSets with
    the same flags render to the same command line.
    """

    def __new__(cls, flags: Iterable[str] = ()):
        if isinstance(flags, str):
            flags = [flags]
        return super().__new__(cls, (f.strip() for f in flags if f and f.strip()))

    @classmethod
    def parse(cls, text: str | None) -> "FeatureSet":
        """Parse "base,extended-build" or "base extended-build"."""
        if not text:
            return cls()
        return cls(text.replace(",", " ").split())

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(frozenset.__iter__(self)))

    def __or__(self, other: Iterable[str]) -> "FeatureSet":
        return FeatureSet(list(self) + list(other))

    def __repr__(self) -> str:
        return f"FeatureSet({list(self)!r})"


@dataclass(frozen=True)
class ActionStep:
    """
    A catalog entry: one platform-gated unit of pipeline work.

    Feature policy, in order of precedence:
      - feature_overrides[platform] replaces everything for that platform
      - features, when set, is used regardless of the request
      - otherwise the requested set plus extra_features
    """
    name: str
    kind: str
    run: Tuple[str, ...]
    platforms: Optional[frozenset] = None      # None -> every platform
    features: Optional[FeatureSet] = None
    extra_features: FeatureSet = field(default_factory=FeatureSet)
    feature_overrides: Mapping[PlatformTarget, FeatureSet] = field(default_factory=dict)
    requires: Tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)

    def applies_to(self, platform: PlatformTarget) -> bool:
        return self.platforms is None or platform in self.platforms

    def features_for(self, platform: PlatformTarget, requested: FeatureSet) -> FeatureSet:
        if platform in self.feature_overrides:
            return FeatureSet(self.feature_overrides[platform])
        if self.features is not None:
            return FeatureSet(self.features)
        return FeatureSet(requested) | self.extra_features

    def known_features(self) -> FeatureSet:
        flags: List[str] = list(self.extra_features)
        if self.features is not None:
            flags.extend(self.features)
        for override in self.feature_overrides.values():
            flags.extend(override)
        return FeatureSet(flags)


@dataclass(frozen=True)
class PlanStep:
    """An ActionStep resolved for one platform: concrete features and commands."""
    name: str
    kind: str
    features: FeatureSet
    commands: Tuple[str, ...]
    requires: Tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "features": list(self.features),
            "commands": list(self.commands),
            "requires": list(self.requires),
            "env": dict(self.env),
        }


@dataclass(frozen=True)
class PipelinePlan:
    platform: PlatformTarget
    requested: FeatureSet
    steps: Tuple[PlanStep, ...]
    strict_lint: bool = True

    @property
    def names(self) -> List[str]:
        return [s.name for s in self.steps]

    def step(self, name: str) -> PlanStep:
        for s in self.steps:
            if s.name == name:
                return s
        raise KeyError(f"No step named {name!r} in plan for {self.platform}")

    def __iter__(self) -> Iterator[PlanStep]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "platform": self.platform.value,
            "runner": self.platform.runner_label,
            "requested_features": list(self.requested),
            "strict_lint": self.strict_lint,
            "steps": [s.to_dict() for s in self.steps],
        }


# ---------------------------------------------------------------------
# Execution results
# ---------------------------------------------------------------------

@dataclass
class StepResult:
    name: str
    status: str  # "ok" | "failed" | "skipped"
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""


@dataclass
class ExecutionResult:
    """Outcome of executing one PipelinePlan."""
    platform: PlatformTarget
    steps: List[StepResult] = field(default_factory=list)
    error: Optional[StepFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None and all(s.status == "ok" for s in self.steps)

    @property
    def failed_step(self) -> Optional[str]:
        for s in self.steps:
            if s.status == "failed":
                return s.name
        return None

    @property
    def exit_code(self) -> int:
        if self.ok:
            return 0
        if self.error is not None:
            return self.error.exit_code_for_run
        return 1

    def statuses(self) -> Dict[str, str]:
        return {s.name: s.status for s in self.steps}
