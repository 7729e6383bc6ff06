# dsl.py
from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional

from .model import ActionStep, FeatureSet, PlatformTarget


# ---------------------------------------------------------------------
# Platform predicates
# ---------------------------------------------------------------------

def only_on(*platforms: PlatformTarget | str) -> frozenset:
    """Gate a step to the given platforms: only_on("linux")."""
    return frozenset(PlatformTarget.parse(p) for p in platforms)


def except_on(*platforms: PlatformTarget | str) -> frozenset:
    """Gate a step to every platform but the given ones."""
    excluded = only_on(*platforms)
    return frozenset(p for p in PlatformTarget if p not in excluded)


# ---------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------

def _commands(cmd: str | Iterable[str]) -> tuple[str, ...]:
    if isinstance(cmd, str):
        cmds = tuple(line.strip() for line in cmd.splitlines() if line.strip())
    else:
        cmds = tuple(cmd)
    if not cmds:
        raise ValueError("a step must run at least one command")
    return cmds


def sh(
    name: str,
    cmd: str | Iterable[str],
    *,
    kind: str = "diagnostic",
    platforms: Optional[frozenset] = None,
    requires: Iterable[str] = (),
    env: Optional[Dict[str, str]] = None,
) -> ActionStep:
    """
    Create a shell step. A multi-line `cmd` becomes one command per line,
    like a `run: |` block.
    """
    return ActionStep(
        name=name,
        kind=kind,
        run=_commands(cmd),
        platforms=platforms,
        requires=tuple(requires),
        env=dict(env or {}),
    )


def toolchain_step(name: str, cmd: str | Iterable[str], *, requires: Iterable[str] = ()) -> ActionStep:
    return sh(name, cmd, kind="toolchain", requires=requires)


def checkout_step(
    name: str,
    cmd: str | Iterable[str],
    *,
    requires: Iterable[str] = ("git",),
) -> ActionStep:
    return sh(name, cmd, kind="checkout", requires=requires)


def lint_step(
    name: str,
    cmd: str,
    *,
    features: Iterable[str],
    requires: Iterable[str] = (),
) -> ActionStep:
    """
    Lint step with a fixed feature set. The request never changes what a lint
    pass covers. `cmd` may use {features} and {lint_flags}.
    """
    return ActionStep(
        name=name,
        kind="lint",
        run=_commands(cmd),
        features=FeatureSet(features),
        requires=tuple(requires),
    )


def test_step(
    name: str,
    cmd: str,
    *,
    extra_features: Iterable[str] = (),
    overrides: Optional[Mapping[PlatformTarget | str, Iterable[str]]] = None,
    requires: Iterable[str] = (),
) -> ActionStep:
    """
    Test step: requested features plus `extra_features`, except on platforms
    listed in `overrides`, which get exactly the set given there.
    """
    table = {
        PlatformTarget.parse(p): FeatureSet(flags)
        for p, flags in (overrides or {}).items()
    }
    return ActionStep(
        name=name,
        kind="test",
        run=_commands(cmd),
        extra_features=FeatureSet(extra_features),
        feature_overrides=table,
        requires=tuple(requires),
    )


test_step.__test__ = False  # not a pytest test
