"""Typer-based CLI for depsnap."""

from __future__ import annotations

import difflib
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import load_config
from .engine import SnapshotEngine
from .errors import DepsnapError
from .toolchain import GoToolchain

app = typer.Typer(
    help="📦 depsnap — pruned source snapshots of what a Go binary really links.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

err_console = Console(stderr=True)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"depsnap v{__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    handler = RichHandler(console=err_console, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    log = logging.getLogger("depsnap")
    log.handlers = [handler]
    log.setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", help="Log dead symbols and tool invocations."),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
):
    """depsnap: review dependency and dead-code drift as a checked-in text file."""
    _setup_logging(verbose)


def _render(entry: str, workdir: Optional[Path]) -> str:
    toolchain = GoToolchain(load_config(), workdir=workdir)
    try:
        return SnapshotEngine(toolchain).dump_to_string(entry)
    except DepsnapError as exc:
        err_console.print(f"❌ {exc}", style="red", markup=False)
        raise typer.Exit(1)


_ENTRY = typer.Argument(..., help="Go package pattern of the program, e.g. ./cmd/server.")
_WORKDIR = typer.Option(None, "--dir", "-C", file_okay=False, help="Run the Go tools in this directory.")
_EXPECTED = typer.Option(..., "--expected", "-e", help="Checked-in snapshot file.")


@app.command("dump")
def dump(
    entry: str = _ENTRY,
    workdir: Optional[Path] = _WORKDIR,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the report here instead of stdout."),
):
    """Print the pruned source snapshot of ENTRY."""
    report = _render(entry, workdir)
    if output is None:
        typer.echo(report, nl=False)
    else:
        output.write_text(report, encoding="utf-8")


@app.command("check")
def check(
    entry: str = _ENTRY,
    expected: Path = _EXPECTED,
    workdir: Optional[Path] = _WORKDIR,
):
    """Fail with a diff if the snapshot of ENTRY differs from EXPECTED."""
    report = _render(entry, workdir)
    previous = expected.read_text(encoding="utf-8") if expected.exists() else ""
    if previous == report:
        typer.echo(f"✅ {expected} is up to date.")
        return

    diff = difflib.unified_diff(
        previous.splitlines(keepends=True),
        report.splitlines(keepends=True),
        fromfile=f"a/{expected}",
        tofile=f"b/{expected}",
    )
    typer.echo("".join(diff), nl=False)
    err_console.print(
        f"❌ {expected} is stale. Run 'depsnap update {entry} --expected {expected}'.",
        style="red",
        markup=False,
    )
    raise typer.Exit(1)


@app.command("update")
def update(
    entry: str = _ENTRY,
    expected: Path = _EXPECTED,
    workdir: Optional[Path] = _WORKDIR,
):
    """Rewrite EXPECTED with the current snapshot of ENTRY."""
    report = _render(entry, workdir)
    expected.parent.mkdir(parents=True, exist_ok=True)
    expected.write_text(report, encoding="utf-8")
    typer.echo(f"Wrote {expected}.")


if __name__ == "__main__":
    app()
