"""Turn exceptions into one-screen error reports and exit codes."""

from __future__ import annotations

import typer

from tfe_provisioner.config.loader import ConfigError
from tfe_provisioner.core.client import TFEError
from tfe_provisioner.core.provider import ProviderConfigurationError
from tfe_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    EngineError,
    OperationCanceled,
    StalePlanError,
    StateError,
    ValidationError,
)
from tfe_provisioner.engine.types import ChangeCounts

EXIT_ERROR = 1
EXIT_CANCELED = 130

_HEADINGS: tuple[tuple[type[Exception], str], ...] = (
    (ConfigError, "Configuration error"),
    (StalePlanError, "Plan is stale"),
    (StateError, "State error"),
    (ProviderConfigurationError, "Unexpected client configuration"),
    (TFEError, "TFE API error"),
    (ApplyError, "Apply failed"),
    (EngineError, "Error"),
)


def _partial(counts: ChangeCounts) -> str:
    done = [
        f"{n} {verb}"
        for n, verb in zip(counts, ("added", "changed", "destroyed"), strict=True)
        if n
    ]
    return f"Partial result: {', '.join(done)}." if done else ""


def report_error(exc: Exception, *, color: bool = True) -> int:
    """Print *exc* to stderr without a traceback and return the exit code."""
    fg = typer.colors.RED if color else None

    def err(line: str) -> None:
        typer.echo(typer.style(line, fg=fg), err=True)

    if isinstance(exc, ValidationError):
        err("Validation failed:")
        for problem in exc.errors:
            err(f"  - {problem}")
        return EXIT_ERROR

    if isinstance(exc, (ApplyCanceled, OperationCanceled)):
        err("Apply canceled.")
        if isinstance(exc, ApplyCanceled) and (summary := _partial(exc.result.counts())):
            err(f"  {summary}")
        return EXIT_CANCELED

    heading = next((h for kind, h in _HEADINGS if isinstance(exc, kind)), "Error")
    err(f"{heading}: {exc}")
    if isinstance(exc, ProviderConfigurationError):
        err("  This is a bug in the host integration, not in your configuration.")
    elif isinstance(exc, ApplyError) and (summary := _partial(exc.result.counts())):
        err(f"  {summary}")
    return EXIT_ERROR
