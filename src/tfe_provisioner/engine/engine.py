"""Refresh, plan and apply for managed test variables."""

from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Literal

from tfe_provisioner import __version__
from tfe_provisioner.core.state import State, fingerprint
from tfe_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DuplicateAddressError,
    OperationCanceled,
    StalePlanError,
    StateOrganizationMismatchError,
    UnknownResourceTypeError,
    ValidationError,
)
from tfe_provisioner.engine.handlers import EngineContext
from tfe_provisioner.engine.lock import StateLock
from tfe_provisioner.engine.operations import schedule
from tfe_provisioner.engine.plan_modifiers import UNKNOWN, evaluate_replacement
from tfe_provisioner.engine.types import Action, ApplyResult, Plan, PlanMetadata, ResourceChange
from tfe_provisioner.resources.markers import collect_sensitive_fields

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from tfe_provisioner.core import TFEProvider
    from tfe_provisioner.core.state import ResourceInstance
    from tfe_provisioner.engine.registry import ResourceTypeRegistry
    from tfe_provisioner.resources.base import Resource

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ResourceChange, Literal["start", "done"]], None]


def config_digest(resources: Sequence[Resource]) -> str:
    return fingerprint(
        sorted(
            ([r.address, r.model_dump(mode="json", exclude={"address"})] for r in resources),
            key=lambda item: item[0],
        )
    )


class TFEEngine:
    """Plans and applies desired resources against one state file.

    Everything runs sequentially. Setting :attr:`cancel` (from a signal
    handler, say) stops the apply before its next remote request; what was
    already applied is saved.
    """

    def __init__(
        self,
        *,
        provider: TFEProvider,
        organization: str,
        state_path: Path,
        registry: ResourceTypeRegistry,
        cancel: threading.Event | None = None,
    ) -> None:
        self._provider = provider
        self._organization = organization
        self._state_path = state_path
        self._registry = registry
        self.cancel = cancel if cancel is not None else threading.Event()

    @property
    def organization(self) -> str:
        return self._organization

    @property
    def state_path(self) -> Path:
        return self._state_path

    def _context(self) -> EngineContext:
        return EngineContext(self._provider, self._organization, self.cancel)

    def _open_state(self) -> State:
        state = State.load_or_create(self._state_path, organization=self._organization)
        if state.organization != self._organization:
            raise StateOrganizationMismatchError(self._organization, state.organization)
        return state

    # Refresh

    def _refresh(self, state: State) -> bool:
        """Re-read every tracked instance in place. True if anything changed."""
        ctx = self._context()
        changed = False
        for address, inst in list(state.resources.items()):
            attrs = self._registry.handler_for(inst.resource_type).read(ctx, inst)
            if attrs is None:
                logger.info("%s was deleted outside of this tool", address)
                state.forget(address)
                changed = True
            elif attrs != inst.attributes:
                logger.info("%s changed outside of this tool", address)
                state.record(address, inst.resource_type, inst.name, attrs)
                changed = True
        return changed

    def refresh(self, *, persist: bool = False) -> tuple[State, State]:
        """Return state before and after re-reading TFE; save only if *persist*."""
        with StateLock(self._state_path):
            state = self._open_state()
            before = state.model_copy(deep=True)
            if self._refresh(state) and persist:
                state.commit(self._state_path)
            return before, state

    # Plan

    def _desired_by_address(self, resources: Sequence[Resource]) -> dict[str, Resource]:
        desired: dict[str, Resource] = {}
        for r in resources:
            if r.address in desired:
                raise DuplicateAddressError(r.address)
            if r.resource_type not in self._registry:
                raise UnknownResourceTypeError(r.resource_type)
            desired[r.address] = r
        return desired

    def _change_for(self, ctx: EngineContext, resource: Resource, state: State) -> ResourceChange:
        handler = self._registry.handler_for(resource.resource_type)
        planned = handler.planned_attributes(ctx, resource)
        inst = state.resources.get(resource.address)
        prior = dict(inst.attributes) if inst is not None else None
        diff: dict[str, Any] = {}
        forced: list[str] = []
        if prior is None:
            action = Action.CREATE
        else:
            diff = {
                k: {"from": prior.get(k), "to": v}
                for k, v in planned.items()
                if v != prior.get(k)
            }
            if diff:
                decisions = evaluate_replacement(
                    handler.replacement_policies(resource), prior, planned
                )
                forced = sorted({d.attribute for d in decisions if d.attribute})
                action = Action.REPLACE if decisions else Action.UPDATE
            else:
                action = Action.NOOP

        computed = handler.computed_attributes(
            prior, planned, replace=action in (Action.CREATE, Action.REPLACE)
        )
        unknown = sorted(k for k, v in computed.items() if v is UNKNOWN)
        known = {k: v for k, v in computed.items() if v is not UNKNOWN}
        if prior is not None:
            for k, v in known.items():
                if v != prior.get(k):
                    diff[k] = {"from": prior.get(k), "to": v}
            for k in unknown:
                if prior.get(k) is not None:
                    diff[k] = {"from": prior.get(k), "to": None}

        logger.debug("%s: %s", resource.address, action.value)
        return ResourceChange(
            address=resource.address,
            resource_type=resource.resource_type,
            action=action,
            desired=resource.model_dump(mode="json", exclude={"address"}),
            prior=prior,
            planned={**planned, **known},
            diff=diff or None,
            unknown=unknown if action != Action.NOOP else [],
            requires_replace=forced,
            sensitive=collect_sensitive_fields(resource),
        )

    def _removal(self, inst: ResourceInstance) -> ResourceChange:
        model = self._registry[inst.resource_type].model
        return ResourceChange(
            address=inst.address,
            resource_type=inst.resource_type,
            action=Action.DELETE,
            prior=dict(inst.attributes),
            sensitive=collect_sensitive_fields(model),
        )

    def plan(
        self, resources: Sequence[Resource], *, destroy: bool = False, refresh: bool = True
    ) -> Plan:
        logger.info(
            "Planning %d resources (destroy=%s, refresh=%s)", len(resources), destroy, refresh
        )
        # Without refresh nothing is written, so no lock is needed.
        with StateLock(self._state_path) if refresh else contextlib.nullcontext():
            state = self._open_state()
            if refresh and self._refresh(state):
                state.commit(self._state_path)

            desired = self._desired_by_address(resources)
            ctx = self._context()
            changes: list[ResourceChange] = []
            keep: set[str] = set()
            if not destroy:
                errors = [
                    msg
                    for r in desired.values()
                    for msg in self._registry.handler_for(r.resource_type).validate(ctx, r)
                ]
                if errors:
                    raise ValidationError(errors)
                changes = [self._change_for(ctx, desired[a], state) for a in sorted(desired)]
                keep = set(desired)
            changes += [
                self._removal(state.resources[a]) for a in sorted(set(state.resources) - keep)
            ]

            return Plan(
                metadata=PlanMetadata(
                    organization=self._organization,
                    destroy=destroy,
                    refresh=refresh,
                    state_lineage=state.lineage,
                    state_serial=state.serial,
                    state_digest=state.digest(),
                    config_digest=config_digest([] if destroy else resources),
                    tool_version=__version__,
                ),
                changes=changes,
            )

    # Apply

    def _state_for(self, plan: Plan) -> State:
        if self._state_path.exists():
            state = self._open_state()
        else:
            # A plan made against no state file bootstraps the first one.
            state = State(
                organization=self._organization,
                lineage=plan.metadata.state_lineage,
                serial=plan.metadata.state_serial,
            )
        meta = plan.metadata
        if state.lineage != meta.state_lineage:
            raise StalePlanError("State lineage changed; re-run plan")
        if state.serial != meta.state_serial:
            raise StalePlanError(
                f"State serial is {state.serial}, plan was made at {meta.state_serial}; re-run plan"
            )
        if state.digest() != meta.state_digest:
            raise StalePlanError("State contents changed; re-run plan")
        return state

    def apply(self, plan: Plan, *, progress: ProgressCallback | None = None) -> ApplyResult:
        with StateLock(self._state_path):
            state = self._state_for(plan)
            ctx = self._context()
            result = ApplyResult()
            operations = schedule(plan.changes)
            logger.info("Applying %d changes", len(operations))

            for op in operations:
                if progress:
                    progress(op.change, "start")
                before = state.digest()
                try:
                    op.run(ctx, state, self._registry)
                except (KeyboardInterrupt, OperationCanceled) as e:
                    self._save_partial(state, before)
                    raise ApplyCanceled(result) from e
                except Exception as e:
                    self._save_partial(state, before)
                    raise ApplyError(result, op.address, str(e)) from e
                state.commit(self._state_path)
                result.applied.append(op.change)
                if progress:
                    progress(op.change, "done")

            return result

    def _save_partial(self, state: State, before: str) -> None:
        """Keep whatever a failed operation already did, e.g. the delete of a replace."""
        if state.digest() != before:
            state.commit(self._state_path)
