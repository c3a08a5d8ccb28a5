"""
Unit tests for the cronscale command line.
"""

from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest
import typer
from typer.testing import CliRunner

from cronscale.cli import app, check_manifest, parse_workload_option

runner = CliRunner()

GOOD_MANIFEST = dedent(
    """
    apiVersion: autoscal.aiops.org/v1
    kind: CronHPA
    metadata:
      name: web-hours
    spec:
      scaleTarget: {apiVersion: apps/v1, kind: Deployment, name: web}
      jobs:
        - {name: scale-up, schedule: "0 9 * * 1-5", size: 10}
        - {name: scale-down, schedule: "0 18 * * 1-5", size: 2}
    """
)

BAD_MANIFEST = dedent(
    """
    apiVersion: autoscal.aiops.org/v1
    kind: CronHPA
    metadata:
      name: broken
    spec:
      scaleTarget: {apiVersion: apps/v1, kind: Deployment, name: web}
      jobs:
        - {name: typo, schedule: "99 * * *", size: 1}
    """
)


def test_next_lists_fire_times():
    result = runner.invoke(app, ["next", "0 9 * * *", "--after", "2024-01-01T08:00:00Z", "-n", "2"])

    assert result.exit_code == 0, result.output
    assert result.output.split() == ["2024-01-01T09:00:00Z", "2024-01-02T09:00:00Z"]


def test_next_rejects_malformed_schedule():
    result = runner.invoke(app, ["next", "99 * * *"])

    assert result.exit_code == 2
    assert "expected 5 fields" in result.output


def test_next_rejects_schedule_without_matching_date():
    result = runner.invoke(app, ["next", "0 0 30 2 *"])

    assert result.exit_code == 2
    assert "no matching date" in result.output


def test_validate_reports_day_that_never_occurs(tmp_path: Path):
    path = tmp_path / "february.yaml"
    path.write_text(BAD_MANIFEST.replace("99 * * *", "0 0 30 2 *"), encoding="utf-8")

    result = runner.invoke(app, ["validate", str(path)])

    assert result.exit_code == 1
    assert "no matching date" in result.output


def test_validate_accepts_good_manifest(tmp_path: Path):
    path = tmp_path / "good.yaml"
    path.write_text(GOOD_MANIFEST, encoding="utf-8")

    result = runner.invoke(app, ["validate", str(path)])

    assert result.exit_code == 0, result.output
    assert "web-hours ok" in result.output


def test_validate_reports_bad_schedule(tmp_path: Path):
    path = tmp_path / "manifests.yaml"
    path.write_text(GOOD_MANIFEST + "---\n" + BAD_MANIFEST, encoding="utf-8")

    result = runner.invoke(app, ["validate", str(path)])

    assert result.exit_code == 1
    assert "job 'typo'" in result.output


def test_check_manifest_reports_admission_errors():
    problems = check_manifest({"kind": "CronHPA", "metadata": {"name": "x"}, "spec": {"scaleTarget": {}}})
    assert problems and "scaleTarget.name" in problems[0]


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("prod/Deployment/web=3", ("prod", "Deployment", "web", 3)),
        ("Deployment/web=2", ("default", "Deployment", "web", 2)),
        ("jobs/StatefulSet/db", ("jobs", "StatefulSet", "db", 0)),
    ],
)
def test_parse_workload_option(value, expected):
    assert parse_workload_option(value) == expected


@pytest.mark.parametrize("value", ["web=2", "a/b/c/d=1", "Deployment/web=many", "Deployment/web=-1"])
def test_parse_workload_option_rejects_bad_values(value):
    with pytest.raises(typer.BadParameter):
        parse_workload_option(value)
