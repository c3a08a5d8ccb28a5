"""Configuration helpers for cronscale.

This module loads optional YAML configuration files to customize controller
behaviour such as the first-run policy and retry backoff.  Configuration
precedence:

1. Environment variable ``CRONSCALE_CONFIG`` pointing to a YAML file.
2. ``cronscale.yaml`` in the current working directory.
3. Built-in defaults bundled with the package (``config/default.yaml``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import yaml

from cronscale.config.policy import FirstRunPolicy, resolve_first_run_policy

__all__ = [
    "ControllerConfig",
    "build_controller_config",
    "get_controller_config",
    "reset_controller_config",
]


_ENV_VAR = "CRONSCALE_CONFIG"
_CONFIG_PACKAGE = "cronscale.config"


@dataclass
class ControllerConfig:
    first_run_policy: FirstRunPolicy = FirstRunPolicy.CATCH_UP
    min_requeue_seconds: float = 1.0
    prune_stale_runtimes: bool = True
    resync_period: Optional[float] = None
    backoff_base: float = 1.0
    backoff_max: float = 300.0
    poll_interval: float = 1.0


_controller_config: Optional[ControllerConfig] = None


def _resolve_config_path() -> Optional[Path]:
    env_path = os.environ.get(_ENV_VAR)
    if env_path:
        candidate = Path(env_path).expanduser()
        if candidate.is_file():
            return candidate

    cwd_file = Path.cwd() / "cronscale.yaml"
    if cwd_file.is_file():
        return cwd_file
    return None


def _load_yaml_dict() -> Dict[str, object]:
    path = _resolve_config_path()
    if path is not None:
        with path.open("r", encoding="utf-8") as fh:
            return yaml.safe_load(fh) or {}

    # Fallback to bundled default configuration
    from importlib import resources

    text = resources.files(_CONFIG_PACKAGE).joinpath("default.yaml").read_text(encoding="utf-8")
    return yaml.safe_load(text) or {}


def _coerce_float(node: Dict[str, object], key: str, default: float, *, minimum: float = 0.0) -> float:
    raw = node.get(key, default)
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"'controller.{key}' must be a number, got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"'controller.{key}' must be >= {minimum}, got {value}")
    return value


def build_controller_config(data: Dict[str, object]) -> ControllerConfig:
    node = data.get("controller", {}) or {}
    if not isinstance(node, dict):
        raise ValueError("'controller' section must be a mapping")

    raw_policy = node.get("first_run_policy", FirstRunPolicy.CATCH_UP.value)
    policy, hint = resolve_first_run_policy(raw_policy)  # type: ignore[arg-type]
    if policy is None:
        raise ValueError(
            f"Unknown first_run_policy ({hint or raw_policy!r}). "
            f"Expected one of: {', '.join(p.value for p in FirstRunPolicy)}"
        )

    raw_resync = node.get("resync_period")
    resync_period = None
    if raw_resync is not None:
        resync_period = _coerce_float(node, "resync_period", 0.0, minimum=0.0) or None

    backoff_base = _coerce_float(node, "backoff_base", 1.0)
    backoff_max = _coerce_float(node, "backoff_max", 300.0)
    if backoff_max < backoff_base:
        raise ValueError("'controller.backoff_max' must be >= 'controller.backoff_base'")

    return ControllerConfig(
        first_run_policy=policy,
        min_requeue_seconds=_coerce_float(node, "min_requeue_seconds", 1.0, minimum=0.001),
        prune_stale_runtimes=bool(node.get("prune_stale_runtimes", True)),
        resync_period=resync_period,
        backoff_base=backoff_base,
        backoff_max=backoff_max,
        poll_interval=_coerce_float(node, "poll_interval", 1.0, minimum=0.01),
    )


def get_controller_config() -> ControllerConfig:
    global _controller_config
    if _controller_config is None:
        _controller_config = build_controller_config(_load_yaml_dict())
    return _controller_config


def reset_controller_config() -> None:
    """Reset cached controller configuration (intended for tests)."""
    global _controller_config
    _controller_config = None
