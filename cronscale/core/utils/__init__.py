"""Utility helpers for cronscale."""

from .logging import configure_runtime_logging, demote_ray_logging, install_stdout_logger  # noqa: F401

__all__ = [
    "configure_runtime_logging",
    "demote_ray_logging",
    "install_stdout_logger",
]
