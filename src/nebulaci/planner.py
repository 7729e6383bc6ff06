# planner.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from .catalog import default_catalog
from .config import PipelineConfig
from .errors import ConfigurationError, InvalidFeatureError
from .model import ActionStep, FeatureSet, PipelinePlan, PlanStep, PlatformTarget


STRICT_LINT_FLAGS = " -- -D warnings"


def _check_catalog(catalog: Sequence[ActionStep]) -> None:
    names = [s.name for s in catalog]
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if names.count(n) > 1})
        raise ConfigurationError(f"Duplicate step names in catalog: {dupes}")


def known_features(catalog: Sequence[ActionStep], config: PipelineConfig) -> FeatureSet:
    flags: List[str] = list(config.known_features)
    for step in catalog:
        flags.extend(step.known_features())
    return FeatureSet(flags)


def _render(step: ActionStep, features: FeatureSet, config: PipelineConfig, strict_lint: bool) -> tuple:
    values = {
        "features": config.render_features(features),
        "lint_flags": STRICT_LINT_FLAGS if strict_lint else "",
    }
    try:
        return tuple(cmd.format(**values) for cmd in step.run)
    except (KeyError, IndexError) as e:
        raise ConfigurationError(f"step '{step.name}' has an unknown placeholder: {e}") from e


def resolve_plan(
    platform: PlatformTarget | str,
    features: Iterable[str] | str | None = None,
    *,
    strict_lint: Optional[bool] = None,
    config: Optional[PipelineConfig] = None,
    catalog: Optional[Sequence[ActionStep]] = None,
) -> PipelinePlan:
    """
    Resolve (platform, features) into an ordered PipelinePlan.

    Pure: no processes are started and identical inputs give identical plans.
    Raises InvalidPlatformError / InvalidFeatureError (both ConfigurationError).
    """
    config = config or PipelineConfig()
    target = PlatformTarget.parse(platform)
    strict = config.strict_lint if strict_lint is None else strict_lint
    steps_in = list(catalog) if catalog is not None else default_catalog(config)
    _check_catalog(steps_in)

    if features is None:
        requested = FeatureSet(config.default_features)
    elif isinstance(features, str):
        requested = FeatureSet.parse(features)
    else:
        requested = FeatureSet(features)

    known = known_features(steps_in, config)
    unknown = set(requested) - set(known)
    if unknown:
        raise InvalidFeatureError(unknown, known)

    resolved: List[PlanStep] = []
    for step in steps_in:
        if not step.applies_to(target):
            continue
        step_features = step.features_for(target, requested)
        resolved.append(PlanStep(
            name=step.name,
            kind=step.kind,
            features=step_features,
            commands=_render(step, step_features, config, strict),
            requires=step.requires,
            env=dict(step.env),
        ))

    return PipelinePlan(
        platform=target,
        requested=requested,
        steps=tuple(resolved),
        strict_lint=strict,
    )


def resolve_matrix(
    features: Iterable[str] | str | None = None,
    *,
    platforms: Optional[Iterable[PlatformTarget | str]] = None,
    strict_lint: Optional[bool] = None,
    config: Optional[PipelineConfig] = None,
) -> Dict[PlatformTarget, PipelinePlan]:
    """One independent plan per platform, in linux, macos, windows order."""
    targets = [PlatformTarget.parse(p) for p in platforms] if platforms else list(PlatformTarget)
    return {
        t: resolve_plan(t, features, strict_lint=strict_lint, config=config)
        for t in targets
    }
