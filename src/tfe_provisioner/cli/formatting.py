"""Terraform-style rendering of plans, drift and apply results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import typer
from rich.table import Table
from rich.text import Text

from tfe_provisioner.engine.types import Action, ChangeCounts
from tfe_provisioner.resources.markers import REDACTED, redact

if TYPE_CHECKING:
    from collections.abc import Iterable

    from tfe_provisioner.core.state import State
    from tfe_provisioner.engine.types import ResourceChange

KNOWN_AFTER_APPLY = "(known after apply)"
NO_CHANGES = "No changes. Test variables are up-to-date."


@dataclass(frozen=True)
class ActionStyle:
    symbol: str
    color: str
    heading: str
    doing: str = ""
    done: str = ""


STYLES: dict[Action, ActionStyle] = {
    Action.CREATE: ActionStyle("+", "green", "will be created", "Creating", "Created"),
    Action.UPDATE: ActionStyle("~", "yellow", "will be updated in-place", "Updating", "Updated"),
    Action.REPLACE: ActionStyle("-/+", "magenta", "must be replaced", "Replacing", "Replaced"),
    Action.DELETE: ActionStyle("-", "red", "will be destroyed", "Destroying", "Destroyed"),
    Action.NOOP: ActionStyle(" ", "bright_black", "is up-to-date"),
}


def render_value(value: Any) -> str:
    """HCL-ish literal: quoted strings, lowercase booleans, ``null``."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)


class PlanRenderer:
    def __init__(self, *, color: bool = True) -> None:
        self.color = color

    def paint(self, text: str, fg: str | None = None, *, bold: bool = False) -> str:
        return typer.style(text, fg=fg, bold=bold) if self.color else text

    def _shown(self, change: ResourceChange, key: str, value: Any) -> str:
        return REDACTED if key in change.sensitive else render_value(value)

    def attributes(self, change: ResourceChange) -> dict[str, str]:
        """``attribute -> rendered value`` for the body of a change block."""
        shown: dict[str, str] = {}
        if change.action == Action.CREATE:
            for key, value in (change.planned or {}).items():
                shown[key] = self._shown(change, key, value)
            for key in change.unknown:
                shown[key] = KNOWN_AFTER_APPLY
        elif change.action in (Action.UPDATE, Action.REPLACE):
            for key, d in (change.diff or {}).items():
                before = self._shown(change, key, d["from"])
                after = self._shown(change, key, d["to"])
                if key in change.unknown:
                    after = KNOWN_AFTER_APPLY
                line = f"{before} -> {after}"
                if key in change.requires_replace:
                    line += " # forces replacement"
                shown[key] = line
        return dict(sorted(shown.items()))

    def block(self, change: ResourceChange) -> str:
        style = STYLES[change.action]
        attrs = self.attributes(change)
        width = max(map(len, attrs), default=0)
        lines = [
            self.paint(f"  # {change.address} {style.heading}", style.color, bold=True),
            self.paint(
                f'  {style.symbol} resource "{change.resource_type}" "{change.name}" {{',
                style.color,
            ),
            *(
                self.paint(f"      {style.symbol} {key.ljust(width)} = {value}", style.color)
                for key, value in attrs.items()
            ),
            self.paint("    }", style.color),
        ]
        return "\n".join(lines)

    def blocks(self, changes: Iterable[ResourceChange]) -> str:
        rendered = [self.block(c) for c in changes if c.action != Action.NOOP]
        return "\n\n".join(rendered) if rendered else NO_CHANGES

    def _tally(self, counts: ChangeCounts, verbs: tuple[str, str, str]) -> str:
        parts = []
        for n, verb, fg in zip(counts, verbs, ("green", "yellow", "red"), strict=True):
            text = f"{n} {verb}"
            parts.append(self.paint(text, fg) if n else text)
        return ", ".join(parts)

    def plan_summary(self, counts: ChangeCounts, header: str = "Plan") -> str:
        return f"{header}: {self._tally(counts, ('to add', 'to change', 'to destroy'))}."

    def apply_summary(self, counts: ChangeCounts) -> str:
        head = self.paint("Apply complete!", "green", bold=True)
        return f"{head} Resources: {self._tally(counts, ('added', 'changed', 'destroyed'))}."


def state_table(state: State) -> Table:
    """One row per managed variable, grouped by registry module, secrets redacted."""
    table = Table("module", "address", "key", "value", "sensitive", "id", box=None)
    for module, instances in state.by_module().items():
        for inst in instances:
            attrs = redact(inst.attributes, ["value"] if inst.attributes.get("sensitive") else [])
            cells = (
                module,
                inst.address,
                attrs.get("key") or "",
                attrs.get("value") or "",
                render_value(bool(attrs.get("sensitive"))),
                inst.resource_id or "",
            )
            # Variable values may contain rich markup characters.
            table.add_row(*(Text(str(c)) for c in cells))
    return table
