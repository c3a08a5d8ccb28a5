"""
Shared configuration dataclasses for management actors.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ActorConfig:
    """
    Generic configuration for the controller and the actors it launches.

    ``state_path`` enables JSON persistence of the resource store so that
    ``lastRuntimes`` survive a controller restart.
    """

    name: str
    state_path: str | None = None
