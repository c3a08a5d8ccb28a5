"""
Bundled configuration resources and policy definitions.
"""

from .policy import (  # noqa: F401
    FIRST_RUN_ALIASES,
    FirstRunPolicy,
    normalize_first_run_policy,
    resolve_first_run_policy,
)

__all__ = [
    "FIRST_RUN_ALIASES",
    "FirstRunPolicy",
    "normalize_first_run_policy",
    "resolve_first_run_policy",
]
