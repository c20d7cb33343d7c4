"""``tfe-provisioner`` command line."""

from __future__ import annotations

import logging
import os
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from tfe_provisioner import __version__

app = typer.Typer(
    name="tfe-provisioner",
    no_args_is_help=True,
    add_completion=False,
)

# TRACE is accepted for parity with TF_LOG and maps to DEBUG.
_LEVELS = {
    "TRACE": logging.DEBUG,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def _log_level(verbose: int) -> int | None:
    """Level from ``TFE_LOG`` if set, else from the ``-v`` count; ``None`` leaves logging off."""
    name = os.environ.get("TFE_LOG", "").strip().upper()
    if name:
        if name not in _LEVELS:
            typer.echo(
                f"Ignoring TFE_LOG={name!r}; expected one of {', '.join(_LEVELS)}. Using INFO.",
                err=True,
            )
        return _LEVELS.get(name, logging.INFO)
    return {0: None, 1: logging.INFO}.get(verbose, logging.DEBUG)


def configure_logging(verbose: int) -> None:
    level = _log_level(verbose)
    if level is None:
        return
    handlers: list[logging.Handler] = [
        RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    ]
    if log_path := os.environ.get("TFE_LOG_PATH"):
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        handlers.append(file_handler)
    logging.basicConfig(level=logging.WARNING, format="%(message)s", handlers=handlers, force=True)
    logging.getLogger("tfe_provisioner").setLevel(level)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"tfe-provisioner {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version", "-V", callback=_print_version, is_eager=True, help="Show version and exit."
        ),
    ] = False,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="-v for info logs, -vv for debug."),
    ] = 0,
) -> None:
    """Plan and apply HCP Terraform registry-module test variables."""
    configure_logging(verbose)


# Commands register themselves on ``app``.
from tfe_provisioner.cli import commands as _commands  # noqa: E402, F401
