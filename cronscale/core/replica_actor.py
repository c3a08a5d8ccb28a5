"""
ReplicaActor: a single replica of a scalable workload.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict

import ray

logger = logging.getLogger(__name__)


@ray.remote
class ReplicaActor:
    """One running copy of a workload managed by WorkloadManagerActor."""

    def __init__(self, workload: str, index: int, labels: Dict[str, str]):
        self.workload = workload
        self.index = index
        self.labels = dict(labels)
        self.started_at = time.time()
        logger.debug("ReplicaActor[%s-%d] started", workload, index)

    def ping(self) -> str:
        return "pong"

    def describe(self) -> Dict[str, Any]:
        return {
            "workload": self.workload,
            "index": self.index,
            "labels": dict(self.labels),
            "uptime": time.time() - self.started_at,
        }


__all__ = ["ReplicaActor"]
