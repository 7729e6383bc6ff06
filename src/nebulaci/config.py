# config.py
from __future__ import annotations

import os
import runpy
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from .errors import ConfigurationError
from .model import FeatureSet


DEFAULT_CONFIG_FILE = "nebulaci_config.py"

# Abstract feature flag -> cargo feature name
NEBULA_FEATURE_MAP: Dict[str, str] = {
    "base": "llama",
    "extended": "llama",
    "extended-build": "llama-build",
}

ENV_PREFIX = "NEBULACI_"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class CheckoutOptions:
    """Source retrieval knobs. Both default-disabled unless declared."""
    submodules: bool = False
    lfs: bool = False


@dataclass(frozen=True)
class PipelineConfig:
    project: str = "Nebula"
    feature_map: Mapping[str, str] = field(default_factory=lambda: dict(NEBULA_FEATURE_MAP))
    default_features: FeatureSet = field(default_factory=lambda: FeatureSet(["base"]))
    strict_lint: bool = True
    include_diagnostics: bool = False
    checkout: CheckoutOptions = field(default_factory=CheckoutOptions)
    push_branches: Tuple[str, ...] = ("main",)
    pull_request_branches: Tuple[str, ...] = ("develop", "main", "release")

    @property
    def known_features(self) -> FeatureSet:
        return FeatureSet(self.feature_map.keys())

    def render_features(self, features: FeatureSet) -> str:
        """Translate flags to build-tool feature names, deduplicated and sorted."""
        names = {self.feature_map.get(f, f) for f in features}
        return " ".join(sorted(names))


def _env_bool(environ: Mapping[str, str], name: str) -> Optional[bool]:
    raw = environ.get(ENV_PREFIX + name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{ENV_PREFIX}{name} must be a boolean, got {raw!r}")


def apply_env(config: PipelineConfig, environ: Optional[Mapping[str, str]] = None) -> PipelineConfig:
    """
    Overlay NEBULACI_* environment variables:
      NEBULACI_STRICT_LINT, NEBULACI_DIAGNOSTICS, NEBULACI_SUBMODULES,
      NEBULACI_LFS (booleans) and NEBULACI_FEATURES ("base,extended-build").
    """
    env = os.environ if environ is None else environ
    changes: Dict[str, object] = {}

    strict = _env_bool(env, "STRICT_LINT")
    if strict is not None:
        changes["strict_lint"] = strict

    diagnostics = _env_bool(env, "DIAGNOSTICS")
    if diagnostics is not None:
        changes["include_diagnostics"] = diagnostics

    submodules = _env_bool(env, "SUBMODULES")
    lfs = _env_bool(env, "LFS")
    if submodules is not None or lfs is not None:
        changes["checkout"] = CheckoutOptions(
            submodules=config.checkout.submodules if submodules is None else submodules,
            lfs=config.checkout.lfs if lfs is None else lfs,
        )

    features = env.get(ENV_PREFIX + "FEATURES")
    if features:
        changes["default_features"] = FeatureSet.parse(features)

    return replace(config, **changes) if changes else config


def load_config(path: str | Path) -> PipelineConfig:
    """
    Load a PipelineConfig from a python file.

    The file must define either:
      - config() -> PipelineConfig
      - CONFIG = PipelineConfig(...)
    """
    cfg_path = Path(path).expanduser().resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    if cfg_path.suffix != ".py":
        raise ConfigurationError(f"Config must be a .py file, got: {cfg_path.name}")

    globals_dict = runpy.run_path(str(cfg_path), run_name=f"nebulaci_config_{cfg_path.stem}")

    cfg = None
    if "config" in globals_dict and callable(globals_dict["config"]):
        cfg = globals_dict["config"]()
    elif "CONFIG" in globals_dict:
        cfg = globals_dict["CONFIG"]

    if not isinstance(cfg, PipelineConfig):
        raise ConfigurationError(
            f"{cfg_path.name} must define config() -> PipelineConfig or CONFIG = PipelineConfig(...)"
        )
    return cfg


def discover_config(path: str | Path | None = None, environ: Optional[Mapping[str, str]] = None) -> PipelineConfig:
    """Explicit file, else ./nebulaci_config.py if present, else defaults; env applied last."""
    if path is not None:
        cfg = load_config(path)
    elif Path(DEFAULT_CONFIG_FILE).exists():
        cfg = load_config(DEFAULT_CONFIG_FILE)
    else:
        cfg = PipelineConfig()
    return apply_env(cfg, environ)
