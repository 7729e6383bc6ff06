# catalog.py
# The fixed Nebula step catalog. Order here is execution order.
from __future__ import annotations

from typing import List, Optional

from .config import PipelineConfig
from .dsl import checkout_step, lint_step, only_on, sh, test_step, toolchain_step
from .model import ActionStep, FeatureSet, PlatformTarget


LINT_FEATURES = FeatureSet(["extended"])
TEST_EXTRA_FEATURES = FeatureSet(["base", "extended-build"])

# Extended capabilities are not validated on windows: the test step there runs
# with exactly the base set.
TEST_FEATURE_OVERRIDES = {
    PlatformTarget.WINDOWS: FeatureSet(["base"]),
}


def checkout_steps(config: PipelineConfig) -> List[ActionStep]:
    steps: List[ActionStep] = []
    if config.checkout.submodules:
        steps.append(checkout_step("submodules", "git submodule update --init --recursive"))
    if config.checkout.lfs:
        steps.append(checkout_step("lfs-fetch", "git lfs fetch --all", requires=("git", "git-lfs")))
        steps.append(checkout_step("lfs-pull", "git lfs pull", requires=("git", "git-lfs")))
    return steps


def default_catalog(config: Optional[PipelineConfig] = None) -> List[ActionStep]:
    config = config or PipelineConfig()
    diagnostics = config.include_diagnostics

    steps: List[ActionStep] = checkout_steps(config)

    steps.append(toolchain_step(
        "toolchain-sync",
        """
        rustup update --no-self-update
        rustup component add clippy
        """,
        requires=("rustup",),
    ))

    if diagnostics:
        steps.append(sh(
            "toolchain-info",
            """
            cargo --version --verbose
            rustc --version
            """,
        ))

    steps.append(lint_step(
        "lint",
        'cargo clippy --features "{features}"{lint_flags}',
        features=LINT_FEATURES,
        requires=("cargo",),
    ))

    if diagnostics:
        steps.append(sh("cpu-info", "cat /proc/cpuinfo", platforms=only_on(PlatformTarget.LINUX)))

    steps.append(test_step(
        "test",
        'cargo test --features "{features}" -- --nocapture',
        extra_features=TEST_EXTRA_FEATURES,
        overrides=TEST_FEATURE_OVERRIDES,
        requires=("cargo",),
    ))

    return steps
