"""
First-run policy definitions.

A job that has never fired has no ``lastRuntimes`` entry.  The policy decides
which instant its first schedule is computed from.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Dict, Tuple


class FirstRunPolicy(str, Enum):
    """
    How a never-fired job is anchored.

    ``CATCH_UP`` computes the first fire time from the zero timestamp, so the
    job fires on its first reconciliation.  ``WAIT`` anchors it at the instant
    the controller first sees the job and records that instant in
    ``lastRuntimes`` without scaling, so a job waits for its next natural
    occurrence even when it was added long after the resource was created.

    Using ``str`` as a mixin keeps the values YAML/JSON friendly.
    """

    CATCH_UP = "catch_up"
    WAIT = "wait"


FIRST_RUN_ALIASES: Dict[str, str] = {
    "catch-up": FirstRunPolicy.CATCH_UP.value,
    "catchup": FirstRunPolicy.CATCH_UP.value,
    "immediate": FirstRunPolicy.CATCH_UP.value,
    "fire": FirstRunPolicy.CATCH_UP.value,
    "wait-next": FirstRunPolicy.WAIT.value,
    "wait_next": FirstRunPolicy.WAIT.value,
    "next": FirstRunPolicy.WAIT.value,
    "skip": FirstRunPolicy.WAIT.value,
}


def resolve_first_run_policy(
    value: str | FirstRunPolicy | None,
) -> Tuple[FirstRunPolicy | None, str | None]:
    """
    Resolve user input (enum, string, environment indirection) to a policy.

    Supports the following forms:
        - Enum members (:class:`FirstRunPolicy`)
        - String equivalents, case-insensitive (``"catch_up"``, ``"wait"``)
        - Aliases (``"immediate"``, ``"next"``, etc.)
        - Environment indirection: ``"env:CRONSCALE_FIRST_RUN_POLICY"``

    Returns:
        A tuple of ``(policy, hint)`` where ``hint`` describes the resolution
        source.  If resolution fails, returns ``(None, error_hint)``.
    """
    if value is None:
        return None, None

    if isinstance(value, FirstRunPolicy):
        return value, f"enum:{value.name}"

    if not isinstance(value, str):
        return None, None

    raw = value.strip()
    if not raw:
        return None, None

    if raw.lower().startswith("env:"):
        env_key = raw[4:].strip()
        if not env_key:
            return None, "empty environment variable name"
        env_val = os.getenv(env_key)
        if env_val is None:
            return None, f"environment variable {env_key} is not set"
        raw = env_val.strip()
        if not raw:
            return None, f"environment variable {env_key} is empty"
        hint_prefix = f'env:{env_key}="{env_val}"'
    else:
        hint_prefix = None

    alias = FIRST_RUN_ALIASES.get(raw.lower(), raw.lower())
    try:
        policy = FirstRunPolicy(alias)
    except ValueError:
        return None, hint_prefix or f'value="{raw}"'

    return policy, hint_prefix or f'value="{raw}"'


def normalize_first_run_policy(value: str | FirstRunPolicy) -> FirstRunPolicy | None:
    policy, _ = resolve_first_run_policy(value)
    return policy
