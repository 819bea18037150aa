"""Command-line interface for cellcalc."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
import yaml

from cellcalc import __version__


@click.group()
@click.version_option(version=__version__, prog_name="cellcalc")
@click.option(
    "--project-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding cellcalc.yaml; events are logged to its logs/ folder.",
)
@click.pass_context
def main(ctx: click.Context, project_dir: Path | None) -> None:
    """cellcalc -- spreadsheet formula evaluation engine."""
    from cellcalc.project import DEFAULT_CONFIG, load_project_config

    ctx.ensure_object(dict)
    if project_dir is None:
        ctx.obj["config"] = dict(DEFAULT_CONFIG)
        return

    from cellcalc.logging.events import set_project_dir

    try:
        ctx.obj["config"] = load_project_config(project_dir)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise click.ClickException(f"Cannot read project config: {e}")
    project_dir.mkdir(parents=True, exist_ok=True)
    set_project_dir(project_dir)


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _load_cells(path: Path) -> dict[str, Any]:
    """Read a YAML/JSON cell map keyed by ``"row,col"`` or A1 addresses.

    Entries may be full cell mappings (``{value: 3}``, ``{formula: "=A1*2"}``)
    or bare values.
    """
    from cellcalc.address import address_to_key, parse_key
    from cellcalc.models import Cell

    try:
        raw = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise click.ClickException(f"Cannot parse {path}: {e}")
    if not isinstance(raw, dict):
        raise click.ClickException(f"{path} must contain a mapping of cells")

    cells: dict[str, Any] = {}
    for key, entry in raw.items():
        key = str(key).strip()
        if "," in key:
            try:
                pos = parse_key(key)
            except ValueError:
                raise click.ClickException(f"Invalid cell key: {key!r}")
            norm = f"{pos.row},{pos.col}"
        else:
            norm = address_to_key(key)
            if norm is None:
                raise click.ClickException(f"Invalid cell key: {key!r}")
        if isinstance(entry, dict):
            cells[norm] = Cell.model_validate(entry)
        else:
            cells[norm] = Cell(value=entry)
    return cells


def _result_payload(result: Any) -> dict[str, Any]:
    return {
        "value": result.value,
        "error": result.error.value if result.error is not None else None,
    }


# ---------------------------------------------------------------------------
# Eval
# ---------------------------------------------------------------------------


@main.command("eval")
@click.argument("formula")
@click.option(
    "--cells",
    "cells_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML or JSON file with the cell map.",
)
@click.pass_context
def eval_cmd(ctx: click.Context, formula: str, cells_path: Path | None) -> None:
    """Evaluate FORMULA and print the result as JSON."""
    from cellcalc.formulas.evaluator import evaluate
    from cellcalc.sheet import recalculate

    config = ctx.obj["config"]
    max_depth = int(config["max_nesting_depth"])
    cells = _load_cells(cells_path) if cells_path else {}
    if any(c.formula for c in cells.values()):
        cells = recalculate(cells, max_depth=max_depth)

    result = evaluate(formula, cells, max_depth=max_depth)
    click.echo(json.dumps(_result_payload(result), default=str))


# ---------------------------------------------------------------------------
# Recalc
# ---------------------------------------------------------------------------


@main.command()
@click.argument("grid", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the recomputed grid here instead of printing it.",
)
@click.pass_context
def recalc(ctx: click.Context, grid: Path, out: Path | None) -> None:
    """Recompute every formula in the CSV GRID and emit display values."""
    from cellcalc.sheet import load_csv, recalculate, write_csv

    config = ctx.obj["config"]
    delimiter = str(config["csv_delimiter"])
    try:
        cells = load_csv(grid, delimiter=delimiter)
    except Exception as e:
        raise click.ClickException(f"Cannot read {grid}: {e}")

    cells = recalculate(cells, max_depth=int(config["max_nesting_depth"]))

    if out is None:
        click.echo(write_csv(cells, delimiter=delimiter), nl=False)
    else:
        write_csv(cells, out, delimiter=delimiter)
        click.echo(f"Wrote {out}")


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def functions(as_json: bool) -> None:
    """List the built-in formula functions."""
    from cellcalc.functions.registry import registered_functions

    specs = sorted(registered_functions().values(), key=lambda s: s.name)
    if as_json:
        click.echo(
            json.dumps(
                [
                    {
                        "name": s.name,
                        "flatten": s.flatten,
                        "accepts_errors": s.accepts_errors,
                        "volatile": s.volatile,
                    }
                    for s in specs
                ],
                indent=2,
            )
        )
        return
    for s in specs:
        suffix = "  (volatile)" if s.volatile else ""
        click.echo(f"{s.name}{suffix}")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@main.command("events")
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--limit", default=100, type=int, help="Maximum events to show.")
def events_cmd(directory: str, level: str | None, event_type: str | None, limit: int) -> None:
    """Show the structured event log for DIRECTORY."""
    from cellcalc.logging.sink import EventSink

    sink = EventSink(Path(directory))
    events = sink.read_global(level=level, event_type=event_type, limit=limit)

    if not events:
        click.echo("No events found.")
        return

    for evt in events:
        ts = evt.get("ts", "")
        lvl = evt.get("level", "").upper()
        etype = evt.get("event_type", "")
        msg = evt.get("message", "")
        err = evt.get("error_code")
        line = f"[{ts}] {lvl:7s} {etype}: {msg}"
        if err:
            line += f"  ({err})"
        click.echo(line)
