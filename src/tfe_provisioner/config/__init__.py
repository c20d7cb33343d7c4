"""Python API over a configuration file: load, plan, apply, refresh, drift.

Example:
    config = load("tfe-provisioner.yaml")
    result = apply(plan(config), config)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from tfe_provisioner.config.loader import ConfigError, load_config
from tfe_provisioner.config.registry import default_registry
from tfe_provisioner.config.schema import Config, ProviderConfig
from tfe_provisioner.core.state import State
from tfe_provisioner.engine.engine import TFEEngine
from tfe_provisioner.engine.lock import StateLock
from tfe_provisioner.engine.types import Action, ResourceChange
from tfe_provisioner.resources.markers import collect_sensitive_fields

if TYPE_CHECKING:
    import threading
    from pathlib import Path

    from tfe_provisioner.core.state import ResourceInstance
    from tfe_provisioner.engine.engine import ProgressCallback
    from tfe_provisioner.engine.types import ApplyResult, Plan

__all__ = [
    "Config",
    "ConfigError",
    "ProviderConfig",
    "State",
    "apply",
    "drift",
    "drift_changes",
    "engine_for",
    "load",
    "plan",
    "plan_and_apply",
    "refresh",
    "save_state",
]


def load(path: Path | str) -> Config:
    return load_config(path)


def engine_for(config: Config, *, cancel: threading.Event | None = None) -> TFEEngine:
    """Engine bound to the configured provider and state file."""
    try:
        provider = config.provider.to_provider()
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc
    return TFEEngine(
        provider=provider,
        organization=config.provider.organization,
        state_path=config.state_path,
        registry=default_registry(),
        cancel=cancel,
    )


def plan(config: Config, *, destroy: bool = False, refresh: bool = True) -> Plan:
    return engine_for(config).plan(config.resources, destroy=destroy, refresh=refresh)


def apply(
    plan_obj: Plan,
    config: Config,
    *,
    progress: ProgressCallback | None = None,
    cancel: threading.Event | None = None,
) -> ApplyResult:
    """Apply *plan_obj*. Setting *cancel* stops before the next remote call."""
    return engine_for(config, cancel=cancel).apply(plan_obj, progress=progress)


def plan_and_apply(config: Config, *, destroy: bool = False) -> ApplyResult:
    return apply(plan(config, destroy=destroy), config)


def refresh(config: Config) -> tuple[list[ResourceChange], State]:
    """Re-read TFE without saving; returns the drift and the refreshed state."""
    before, after = engine_for(config).refresh()
    return drift_changes(before, after), after


def save_state(config: Config, state: State) -> None:
    with StateLock(config.state_path):
        state.commit(config.state_path)


def drift(config: Config) -> list[ResourceChange]:
    return refresh(config)[0]


def _drift_for(
    before: ResourceInstance, after: ResourceInstance | None, sensitive: list[str]
) -> ResourceChange | None:
    common = {
        "address": before.address,
        "resource_type": before.resource_type,
        "prior": dict(before.attributes),
        "sensitive": sensitive,
    }
    if after is None:
        return ResourceChange(action=Action.DELETE, **common)
    old, new = before.attributes, after.attributes
    diff = {
        k: {"from": old.get(k), "to": new.get(k)}
        for k in sorted(old.keys() | new.keys())
        if old.get(k) != new.get(k)
    }
    if not diff:
        return None
    return ResourceChange(action=Action.UPDATE, planned=dict(new), diff=diff, **common)


def drift_changes(before: State, after: State) -> list[ResourceChange]:
    """Changes that turn *before* into *after*: edits and out-of-band deletions."""
    registry = default_registry()
    changes = []
    for address in sorted(before.resources):
        inst = before.resources[address]
        sensitive = (
            collect_sensitive_fields(registry[inst.resource_type].model)
            if inst.resource_type in registry
            else []
        )
        change = _drift_for(inst, after.resources.get(address), sensitive)
        if change is not None:
            changes.append(change)
    return changes
