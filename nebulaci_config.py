# nebulaci_config.py
# Pipeline configuration for Nebula itself. Picked up automatically by
# `nebulaci plan|matrix|run|trigger` when run from the repository root.
from __future__ import annotations

from nebulaci.config import CheckoutOptions, PipelineConfig


def config():
    return PipelineConfig(
        project="Nebula",
        strict_lint=True,
        # Submodules carry the llama.cpp sources; LFS objects stay off until
        # the model fixtures move back into LFS.
        checkout=CheckoutOptions(submodules=True, lfs=False),
    )
