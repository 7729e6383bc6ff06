from .dsl import sh, only_on, except_on, toolchain_step, lint_step, test_step
from .model import ActionStep, FeatureSet, PipelinePlan, PlatformTarget
from .planner import resolve_plan, resolve_matrix
from .runner import execute, run
from .errors import ConfigurationError, InvalidPlatformError, InvalidFeatureError

__all__ = [
    "sh", "only_on", "except_on", "toolchain_step", "lint_step", "test_step",
    "ActionStep", "FeatureSet", "PipelinePlan", "PlatformTarget",
    "resolve_plan", "resolve_matrix", "execute", "run",
    "ConfigurationError", "InvalidPlatformError", "InvalidFeatureError",
]
