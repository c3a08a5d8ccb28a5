"""
Unit tests for the cronscale head helper.
"""

from __future__ import annotations

from cronscale.core.actors.head import CronScaleHead


def test_head_start_stop(ray_runtime):
    head = CronScaleHead(name="test-cronscale-controller")

    assert head.start(run_loop=False) is True
    assert head._actor is not None  # pylint: disable=protected-access

    assert head.stop() is True
    assert head._actor is None  # pylint: disable=protected-access
