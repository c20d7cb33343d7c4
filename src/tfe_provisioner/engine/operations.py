"""Apply-time operations.

Each actionable change becomes an :class:`Operation`. State is written only
after the handler call it depends on returns, so a failure leaves the last
successful record in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from tfe_provisioner.engine.types import Action

if TYPE_CHECKING:
    from collections.abc import Iterable

    from tfe_provisioner.core.state import State
    from tfe_provisioner.engine.handlers import EngineContext
    from tfe_provisioner.engine.registry import Registration, ResourceTypeRegistry
    from tfe_provisioner.engine.types import ResourceChange
    from tfe_provisioner.resources.base import Resource

# Removals run before updates and creates so a freed key can be taken again.
APPLY_ORDER = (Action.REPLACE, Action.DELETE, Action.UPDATE, Action.CREATE)


@dataclass(frozen=True)
class Operation:
    change: ResourceChange

    @property
    def address(self) -> str:
        return self.change.address

    def run(self, ctx: EngineContext, state: State, registry: ResourceTypeRegistry) -> None:
        reg = registry[self.change.resource_type]
        action = self.change.action
        if action in (Action.DELETE, Action.REPLACE):
            reg.handler.delete(ctx, state.resources[self.address])
            state.forget(self.address)
        if action == Action.UPDATE:
            desired = self._desired(reg)
            attrs = reg.handler.update(ctx, desired, state.resources[self.address])
            state.record(self.address, desired.resource_type, desired.name, attrs)
        elif action in (Action.CREATE, Action.REPLACE):
            desired = self._desired(reg)
            attrs = reg.handler.create(ctx, desired)
            state.record(self.address, desired.resource_type, desired.name, attrs)

    def _desired(self, reg: Registration) -> Resource:
        if self.change.desired is None:
            raise ValueError(f"Plan has no configuration for {self.address}")
        desired = reg.model.model_validate(self.change.desired)
        if desired.address != self.address:
            raise ValueError(f"Plan entry {self.address} holds config for {desired.address}")
        return desired


def schedule(changes: Iterable[ResourceChange]) -> list[Operation]:
    """Operations for every actionable change, in :data:`APPLY_ORDER` then by address."""
    rank = {action: i for i, action in enumerate(APPLY_ORDER)}
    actionable = sorted(
        (c for c in changes if c.action in rank), key=lambda c: (rank[c.action], c.address)
    )
    return [Operation(c) for c in actionable]
