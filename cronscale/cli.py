"""
Command line entry point for cronscale.

    cronscale next "0 9 * * 1-5" --count 3
    cronscale validate examples/web-hours.yaml
    cronscale run examples/web-hours.yaml -w default/Deployment/web=2
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

import typer
import yaml

from cronscale.core.entities.resource import ScalableResource, format_timestamp, parse_timestamp
from cronscale.core.errors import ScheduleParseError, ValidationError
from cronscale.core.scheduling import SystemClock, iter_fire_times, parse_schedule

logger = logging.getLogger("cronscale.cli")

app = typer.Typer(help="Time-driven replica scaling controller.", no_args_is_help=True)


def load_manifests(paths: List[Path]) -> Iterator[Tuple[Path, Dict[str, Any]]]:
    """Yield every YAML document of every file, skipping empty documents."""
    for path in paths:
        with path.open("r", encoding="utf-8") as fh:
            for document in yaml.safe_load_all(fh):
                if document:
                    yield path, document


def parse_workload_option(value: str) -> Tuple[str, str, str, int]:
    """Parse ``NAMESPACE/KIND/NAME=REPLICAS`` (namespace and replicas optional)."""
    ref, sep, raw_replicas = value.partition("=")
    replicas = 0
    if sep:
        try:
            replicas = int(raw_replicas)
        except ValueError as exc:
            raise typer.BadParameter(f"Invalid replica count in '{value}'") from exc
    parts = [part for part in ref.split("/") if part]
    if len(parts) == 2:
        parts.insert(0, "default")
    if len(parts) != 3 or replicas < 0:
        raise typer.BadParameter(f"Expected NAMESPACE/KIND/NAME=REPLICAS, got '{value}'")
    namespace, kind, name = parts
    return namespace, kind, name, replicas


def check_manifest(document: Dict[str, Any]) -> List[str]:
    """Return admission and schedule problems of one manifest."""
    try:
        resource = ScalableResource.from_dict(document).validate()
    except ValidationError as exc:
        return [str(exc)]
    problems: List[str] = []
    for job in resource.spec.jobs:
        try:
            parse_schedule(job.schedule)
        except ScheduleParseError as exc:
            problems.append(f"{resource.key}: job '{job.name}': {exc.reason}")
    return problems


@app.command("next")
def next_command(
    schedule: str = typer.Argument(..., help="Five-field cron expression."),
    after: Optional[str] = typer.Option(None, "--after", help="RFC 3339 start time (default: now)."),
    count: int = typer.Option(5, "--count", "-n", min=1, help="Number of fire times to show."),
) -> None:
    """Preview the next fire times of a schedule."""
    try:
        start = parse_timestamp(after) if after else SystemClock().now()
        times = list(iter_fire_times(schedule, start, count))
    except (ScheduleParseError, ValidationError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)
    for when in times:
        typer.echo(format_timestamp(when))


@app.command()
def validate(
    manifests: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="CronHPA manifest files."),
) -> None:
    """Check manifests and their schedules without starting the controller."""
    failed = False
    for path, document in load_manifests(manifests):
        problems = check_manifest(document)
        name = (document.get("metadata") or {}).get("name", "?")
        if problems:
            failed = True
            for problem in problems:
                typer.echo(f"{path}: {problem}", err=True)
        else:
            typer.echo(f"{path}: {name} ok")
    if failed:
        raise typer.Exit(code=1)


@app.command()
def run(
    manifests: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="CronHPA manifest files."),
    workload: List[str] = typer.Option(
        [], "--workload", "-w", help="Workload to create, NAMESPACE/KIND/NAME=REPLICAS. Repeatable."
    ),
    state_path: Optional[Path] = typer.Option(None, "--state-path", help="Directory for persisted state."),
    address: Optional[str] = typer.Option(None, "--address", help="Ray cluster address (default: local)."),
    duration: Optional[float] = typer.Option(None, "--duration", help="Stop after this many seconds."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Start Ray, load manifests and run the controller loop."""
    import ray

    from cronscale.core.controllers.cron_scaler import RayCronScaler
    from cronscale.core.utils import demote_ray_logging, install_stdout_logger

    install_stdout_logger(logging.DEBUG if verbose else logging.INFO)
    demote_ray_logging()

    workloads = [parse_workload_option(value) for value in workload]
    documents = list(load_manifests(manifests))

    ray.init(address=address, ignore_reinit_error=True, logging_level=logging.WARNING)
    scaler = RayCronScaler(state_path=str(state_path) if state_path else None)
    try:
        for namespace, kind, name, replicas in workloads:
            response = scaler.create_workload(name, namespace=namespace, kind=kind, replicas=replicas)
            if not response.get("success"):
                typer.echo(f"workload {namespace}/{name}: {response.get('error')}", err=True)

        for path, document in documents:
            response = scaler.apply(document)
            if not response.get("success"):
                typer.echo(f"{path}: {response.get('error')}", err=True)
            else:
                logger.info("Applied %s from %s", (document.get("metadata") or {}).get("name"), path)

        scaler.start()
        deadline = time.monotonic() + duration if duration is not None else None
        while deadline is None or time.monotonic() < deadline:
            time.sleep(0.5)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        scaler.shutdown()
        ray.shutdown()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
