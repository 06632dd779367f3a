# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodeplan/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
import yaml

from nodeplan.config.loader import load_fleet
from nodeplan.logging.log import init_logging
from nodeplan.observers.console import ConsoleObserver
from nodeplan.observers.dispatcher import EventBus
from nodeplan.observers.jsonfile import JsonFileObserver
from nodeplan.observers.logger import LoggerObserver
from nodeplan.planner.errors import PlanningError
from nodeplan.planner.planner import FAILED, Planner
from nodeplan.store.filesystem import FilePlanStore


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="nodeplan: RKE2/K3s node plan computation")

DEFAULT_STORE_DIR = Path.home() / ".nodeplan" / "plans"


def _store_dir(explicit: Optional[Path], configured: Optional[str]) -> Path:
    if explicit is not None:
        return explicit
    if configured:
        return Path(configured)
    return DEFAULT_STORE_DIR


@app.command("plan")
def plan_cmd(
    fleet_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Fleet YAML file"),
    store_dir: Optional[Path] = typer.Option(None, "--store-dir", help="Plan store directory"),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Directory for run logs"),
    events: bool = typer.Option(False, "--events", help="Print planner events to the console"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """
    Run one planning pass for the cluster in FLEET_FILE.
    """
    try:
        fleet = load_fleet(fleet_file)
    except (ValueError, yaml.YAMLError) as exc:
        typer.secho(f"Invalid fleet file {fleet_file}: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    plan_dir = _store_dir(store_dir, fleet.settings.store_dir)
    logger, run_id, log_path = init_logging(
        base_dir=log_dir,
        cluster=fleet.cluster.name,
        context={
            "fleet_file": fleet_file,
            "kubernetes_version": fleet.cluster.kubernetes_version,
            "machines": len(fleet.machines),
            "store_dir": plan_dir,
        },
        verbose=verbose,
    )

    observers = [
        LoggerObserver(logger),
        JsonFileObserver(log_path.with_suffix(".jsonl")),
    ]
    if events:
        observers.append(ConsoleObserver())

    store = FilePlanStore(plan_dir)
    planner = Planner(store, settings=fleet.settings, bus=EventBus(observers=observers))

    try:
        result = planner.compute(fleet.cluster, fleet.machines)
    except PlanningError as exc:
        typer.secho(f"Planning failed: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.echo(
        f"cluster={result.cluster} version={result.desired_version} "
        f"runtime={result.runtime} floor={result.floor_version or '-'}"
    )
    for mid, outcome in result.outcomes.items():
        line = f"  {mid}: {outcome.status}"
        if outcome.revision is not None:
            line += f" revision={outcome.revision}"
        if outcome.error:
            line += f" ({outcome.error})"
        typer.echo(line)
    typer.echo(result.summary())

    if result.with_status(FAILED):
        raise typer.Exit(code=2)


@app.command("show")
def show_cmd(
    machine_id: str = typer.Argument(..., help="Machine id"),
    store_dir: Path = typer.Option(DEFAULT_STORE_DIR, "--store-dir", help="Plan store directory"),
):
    """
    Print the stored plan record of a machine as YAML.
    """
    try:
        record = FilePlanStore(store_dir).get(machine_id)
    except PlanningError as exc:
        typer.secho(f"Cannot read plan for {machine_id}: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    if record is None:
        typer.secho(f"No plan stored for {machine_id}", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)
    typer.echo(yaml.safe_dump(record.model_dump(), sort_keys=False, default_flow_style=False))


def main():
    app()


if __name__ == "__main__":
    main()
