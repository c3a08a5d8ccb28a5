"""
cronscale head-node helper.
"""

from __future__ import annotations

import logging
from typing import Optional

import ray

from .control.controller import CronScaleControllerActor
from .management.config import ActorConfig

logger = logging.getLogger(__name__)


class CronScaleHead:
    """Convenience wrapper to start/stop the controller actor on the head node."""

    def __init__(self, name: str = "cronscale-controller", *, state_path: Optional[str] = None):
        self.name = name
        self.state_path = state_path
        self._actor: Optional[ray.actor.ActorHandle] = None

    def start(self, *, run_loop: bool = True) -> bool:
        if self._actor is None:
            self._actor = CronScaleControllerActor.remote(ActorConfig(name=self.name, state_path=self.state_path))
            ray.get(self._actor.bootstrap.remote())
            if run_loop:
                ray.get(self._actor.start.remote())
            logger.info("cronscale controller started (%s)", self.name)
        return True

    def stop(self) -> bool:
        if self._actor:
            ray.get(self._actor.stop.remote())
            ray.kill(self._actor, no_restart=True)
            self._actor = None
            logger.info("cronscale controller stopped (%s)", self.name)
        return True
