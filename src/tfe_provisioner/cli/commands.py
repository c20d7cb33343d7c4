"""Subcommands: plan, apply, destroy, refresh, drift, validate, show."""

from __future__ import annotations

import contextlib
import os
import signal
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Literal

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from tfe_provisioner import config as api
from tfe_provisioner.cli import app
from tfe_provisioner.cli.errors import EXIT_ERROR, report_error
from tfe_provisioner.cli.formatting import STYLES, PlanRenderer, state_table
from tfe_provisioner.engine.types import ChangeCounts, Plan

if TYPE_CHECKING:
    from collections.abc import Iterator
    from types import FrameType

    from tfe_provisioner.config.schema import Config
    from tfe_provisioner.engine.types import ApplyResult, ResourceChange

ConfigOption = Annotated[
    Path,
    typer.Option(
        "--config", "-c", envvar="TFE_PROVISIONER_CONFIG", help="Configuration file to use."
    ),
]
NoColor = Annotated[bool, typer.Option("--no-color", help="Disable colored output.")]
AutoApprove = Annotated[bool, typer.Option("--auto-approve", help="Do not ask for approval.")]
NoRefresh = Annotated[
    bool, typer.Option("--no-refresh", help="Plan against state without reading TFE first.")
]

DEFAULT_CONFIG = Path("tfe-provisioner.yaml")


def _renderer(no_color: bool) -> PlanRenderer:
    return PlanRenderer(color=not (no_color or os.environ.get("NO_COLOR")))


@contextlib.contextmanager
def _reported(renderer: PlanRenderer) -> Iterator[None]:
    """Exit with a clean message instead of a traceback."""
    try:
        yield
    except typer.Exit:
        raise
    except Exception as exc:
        raise typer.Exit(report_error(exc, color=renderer.color)) from exc


@contextlib.contextmanager
def _interruptible() -> Iterator[threading.Event]:
    """First Ctrl-C cancels after the in-flight request, the second one aborts."""
    cancel = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield cancel
        return

    def on_sigint(signum: int, frame: FrameType | None) -> None:
        if cancel.is_set():
            raise KeyboardInterrupt
        cancel.set()
        typer.echo("\nInterrupt received. Stopping after the current request...", err=True)

    previous = signal.signal(signal.SIGINT, on_sigint)
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, previous)


def _show_plan(plan_obj: Plan, renderer: PlanRenderer) -> None:
    typer.echo(renderer.blocks(plan_obj.changes))
    typer.echo()
    typer.echo(renderer.plan_summary(plan_obj.counts()))


def _apply(plan_obj: Plan, cfg: Config, renderer: PlanRenderer) -> ApplyResult:
    console = Console(no_color=not renderer.color, stderr=True)
    columns = (
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
    )
    with _interruptible() as cancel, Progress(*columns, console=console) as progress:
        task = progress.add_task("Applying", total=len(plan_obj.actionable))

        def on_progress(change: ResourceChange, event: Literal["start", "done"]) -> None:
            style = STYLES[change.action]
            if event == "start":
                progress.update(task, description=f"{change.address}: {style.doing}...")
            else:
                progress.console.print(f"  {change.address}: {style.done}", markup=False)
                progress.advance(task)

        return api.apply(plan_obj, cfg, progress=on_progress, cancel=cancel)


def _review_and_apply(
    plan_obj: Plan,
    cfg: Config,
    renderer: PlanRenderer,
    *,
    approved: bool,
    question: str,
    nothing_to_do: str,
) -> None:
    if not plan_obj.actionable:
        typer.echo(nothing_to_do)
        return
    _show_plan(plan_obj, renderer)
    typer.echo()
    if not approved and not typer.confirm(question, default=False):
        typer.echo("Apply canceled.", err=True)
        raise typer.Exit(EXIT_ERROR)

    with _reported(renderer):
        result = _apply(plan_obj, cfg, renderer)
    typer.echo()
    typer.echo(renderer.apply_summary(result.counts()))


@app.command()
def plan(
    config: ConfigOption = DEFAULT_CONFIG,
    out: Annotated[
        Path | None, typer.Option("--out", "-o", help="Write the plan to this file.")
    ] = None,
    destroy: Annotated[
        bool, typer.Option("--destroy", help="Plan removal of every managed variable.")
    ] = False,
    detailed_exitcode: Annotated[
        bool,
        typer.Option("--detailed-exitcode", help="Exit 2 when the plan has changes."),
    ] = False,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Show what apply would change."""
    renderer = _renderer(no_color)
    with _reported(renderer):
        cfg = api.load(config)
        plan_obj = api.plan(cfg, destroy=destroy, refresh=not no_refresh)
        if out is not None:
            plan_obj.save(out)

    _show_plan(plan_obj, renderer)
    if out is not None:
        typer.echo(f"\nSaved the plan to {out}. Apply it with: tfe-provisioner apply {out}")
    if detailed_exitcode and plan_obj.actionable:
        raise typer.Exit(2)


@app.command(name="apply")
def apply_cmd(
    plan_file: Annotated[
        Path | None, typer.Argument(help="Saved plan to apply without prompting.")
    ] = None,
    config: ConfigOption = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Create, update, replace and delete test variables to match the configuration."""
    renderer = _renderer(no_color)
    with _reported(renderer):
        cfg = api.load(config)
        if plan_file is not None:
            plan_obj = Plan.load(plan_file)
        else:
            plan_obj = api.plan(cfg, refresh=not no_refresh)

    _review_and_apply(
        plan_obj,
        cfg,
        renderer,
        approved=auto_approve or plan_file is not None,
        question="Apply these changes?",
        nothing_to_do="No changes. Test variables are up-to-date.",
    )


@app.command()
def destroy(
    config: ConfigOption = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Delete every test variable recorded in state."""
    renderer = _renderer(no_color)
    with _reported(renderer):
        cfg = api.load(config)
        plan_obj = api.plan(cfg, destroy=True)

    _review_and_apply(
        plan_obj,
        cfg,
        renderer,
        approved=auto_approve,
        question="Destroy all managed test variables?",
        nothing_to_do="Nothing to destroy.",
    )


@app.command(name="refresh")
def refresh_cmd(
    config: ConfigOption = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Update the state file from what TFE currently holds."""
    renderer = _renderer(no_color)
    with _reported(renderer):
        cfg = api.load(config)
        changes, state = api.refresh(cfg)

    if not changes:
        typer.echo("State already matches TFE.")
        return
    typer.echo(renderer.blocks(changes))
    typer.echo()
    typer.echo(renderer.plan_summary(ChangeCounts.of(changes), header="Refresh"))
    typer.echo()
    if not auto_approve and not typer.confirm("Write these changes to state?", default=False):
        typer.echo("Refresh canceled.", err=True)
        raise typer.Exit(EXIT_ERROR)

    with _reported(renderer):
        api.save_state(cfg, state)
    n = len(state.resources)
    typer.echo(f"State refreshed: {n} test variable{'' if n == 1 else 's'} tracked.")


@app.command()
def drift(
    config: ConfigOption = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Report changes made in TFE outside of this tool. State is not modified."""
    renderer = _renderer(no_color)
    with _reported(renderer):
        changes = api.drift(api.load(config))

    if not changes:
        typer.echo("No drift detected.")
        return
    typer.echo("Drift detected:\n")
    typer.echo(renderer.blocks(changes))


@app.command()
def validate(
    config: ConfigOption = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Check the configuration offline: schema, categories, module scopes, duplicates."""
    from tfe_provisioner.config.registry import default_registry
    from tfe_provisioner.core.provider import TFEProvider
    from tfe_provisioner.engine.errors import ValidationError
    from tfe_provisioner.engine.handlers import EngineContext

    renderer = _renderer(no_color)
    with _reported(renderer):
        cfg = api.load(config)
        org = cfg.provider.organization
        ctx = EngineContext(provider=TFEProvider(organization=org), organization=org)
        registry = default_registry()
        problems = [
            msg
            for r in cfg.resources
            for msg in registry.handler_for(r.resource_type).validate(ctx, r)
        ]
        if problems:
            raise ValidationError(problems)

    modules = {
        (v.organization or org, v.module_name, v.module_provider) for v in cfg.test_variables
    }
    n = len(cfg.test_variables)
    typer.echo(
        renderer.paint(
            f"Configuration is valid: {n} test variable{'' if n == 1 else 's'} "
            f"across {len(modules)} module{'' if len(modules) == 1 else 's'}.",
            "green",
        )
    )


@app.command()
def show(
    config: ConfigOption = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """List the test variables recorded in state, grouped by module."""
    from tfe_provisioner.core.state import State

    renderer = _renderer(no_color)
    with _reported(renderer):
        cfg = api.load(config)
        state = State.load_or_create(cfg.state_path, organization=cfg.provider.organization)

    if not state.resources:
        typer.echo("No test variables in state.")
        return
    Console(no_color=not renderer.color).print(state_table(state))
    typer.echo(f"\nState serial {state.serial}, lineage {state.lineage}")
