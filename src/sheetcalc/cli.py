"""Command-line interface for sheetcalc."""

from __future__ import annotations

import json
from pathlib import Path

import click

from sheetcalc import __version__


@click.group()
@click.version_option(version=__version__, prog_name="sheetcalc")
def main() -> None:
    """sheetcalc -- spreadsheet cell formulas from the command line."""


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _parse_cells(items: tuple[str, ...]) -> dict[tuple[int, int], str]:
    from sheetcalc.addressing import parse_addr

    cells: dict[tuple[int, int], str] = {}
    for item in items:
        if "=" not in item:
            raise click.ClickException(f"Invalid --cell format: {item!r}. Use ADDR=TEXT.")
        addr, text = item.split("=", 1)
        try:
            cells[parse_addr(addr)] = text
        except ValueError as e:
            raise click.ClickException(str(e))
    return cells


def _open_workbook(workbook: str, project: str | None):
    """Configure logging for the project and load the workbook."""
    from sheetcalc.logging.events import set_project_dir
    from sheetcalc.project import load_project_config
    from sheetcalc.workbook import WorkbookError, load_workbook

    wb_path = Path(workbook)
    project_dir = Path(project) if project else wb_path.parent
    try:
        config = load_project_config(project_dir)
        set_project_dir(project_dir)
        return load_workbook(wb_path, config)
    except (ValueError, WorkbookError) as e:
        raise click.ClickException(str(e))


def _echo_events(events: list[dict]) -> None:
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


_workbook_arg = click.argument("workbook", type=click.Path(exists=True, dir_okay=False))
_sheet_opt = click.option("--sheet", "sheet_name", default=None, help="Sheet name (default: first sheet).")
_project_opt = click.option(
    "--project",
    "project",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Project directory for config and logs (default: the workbook's directory).",
)


# ---------------------------------------------------------------------------
# Eval
# ---------------------------------------------------------------------------


@main.command("eval")
@click.argument("formula")
@click.option("--cell", "cells", multiple=True, help="Grid content as ADDR=TEXT, e.g. A1=10.")
def eval_cmd(formula: str, cells: tuple[str, ...]) -> None:
    """Evaluate FORMULA against an ad hoc grid and print the display value."""
    from sheetcalc.formulas import evaluate

    grid = _parse_cells(cells)
    click.echo(evaluate(formula, lambda r, c: grid.get((r, c), "")))


# ---------------------------------------------------------------------------
# Workbook commands
# ---------------------------------------------------------------------------


@main.command()
@_workbook_arg
@_sheet_opt
@_project_opt
@click.option("--json", "as_json", is_flag=True, help="Output the display grid as JSON.")
def show(workbook: str, sheet_name: str | None, project: str | None, as_json: bool) -> None:
    """Print the display grid of a sheet in WORKBOOK."""
    wb = _open_workbook(workbook, project)
    try:
        sheet = wb.get_sheet(sheet_name)
        grid = wb.evaluate_sheet(sheet.name)
    except KeyError as e:
        raise click.ClickException(str(e.args[0]))

    if as_json:
        out = {"sheet": sheet.name, "headers": sheet.headers(), "rows": grid}
        click.echo(json.dumps(out, indent=2))
        return

    click.echo("\t".join(["#"] + sheet.headers()))
    for r, row in enumerate(grid):
        click.echo("\t".join([str(r + 1)] + row))


@main.command("set")
@_workbook_arg
@click.argument("addr")
@click.argument("text")
@_sheet_opt
@_project_opt
def set_cmd(workbook: str, addr: str, text: str, sheet_name: str | None, project: str | None) -> None:
    """Set cell ADDR in WORKBOOK to TEXT (empty TEXT clears it) and save."""
    from sheetcalc.addressing import make_addr, parse_addr

    wb = _open_workbook(workbook, project)
    try:
        sheet = wb.get_sheet(sheet_name)
        row, col = parse_addr(addr)
        wb.set_cell(sheet.name, addr, text)
    except KeyError as e:
        raise click.ClickException(str(e.args[0]))
    except (ValueError, IndexError) as e:
        raise click.ClickException(str(e))
    wb.save()

    click.echo(f"{make_addr(row, col)} = {sheet.display_value(row, col)}")


@main.command()
@_workbook_arg
@click.argument("out", type=click.Path(dir_okay=False))
@_sheet_opt
@_project_opt
def export(workbook: str, out: str, sheet_name: str | None, project: str | None) -> None:
    """Export the display grid of a sheet in WORKBOOK to OUT as CSV."""
    wb = _open_workbook(workbook, project)
    try:
        path = wb.export_csv(sheet_name, Path(out))
    except KeyError as e:
        raise click.ClickException(str(e.args[0]))
    click.echo(f"Exported to {path}")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@main.command("events")
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--sheet", default=None, help="Filter by sheet name.")
@click.option("--limit", default=100, type=int, help="Maximum events to show.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def events_cmd(
    directory: str,
    level: str | None,
    event_type: str | None,
    sheet: str | None,
    limit: int,
    as_json: bool,
) -> None:
    """Show structured event log for DIRECTORY."""
    from sheetcalc.logging.sink import EventSink

    sink = EventSink(Path(directory))
    events = sink.read_global(level=level, event_type=event_type, sheet=sheet, limit=limit)

    if as_json:
        click.echo(json.dumps(events, indent=2))
        return
    if not events:
        click.echo("No events found.")
        return
    _echo_events(events)


@main.command("sheet-log")
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.argument("sheet")
def sheet_log_cmd(directory: str, sheet: str) -> None:
    """Show event log for a specific sheet."""
    from sheetcalc.logging.sink import EventSink

    events = EventSink(Path(directory)).read_sheet_log(sheet)
    if not events:
        click.echo(f"No events found for sheet {sheet}.")
        return
    _echo_events(events)


if __name__ == "__main__":
    main()
