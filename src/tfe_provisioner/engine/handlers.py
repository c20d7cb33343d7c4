"""Handler base class and the context handed to every handler call."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from tfe_provisioner.engine.errors import OperationCanceled
from tfe_provisioner.engine.plan_modifiers import plan_computed_attributes, requires_replace
from tfe_provisioner.resources.base import Resource
from tfe_provisioner.resources.markers import RequiresReplace, marked_fields

if TYPE_CHECKING:
    from collections.abc import Mapping

    from tfe_provisioner.core import TFEProvider
    from tfe_provisioner.core.state import ResourceInstance
    from tfe_provisioner.engine.plan_modifiers import PlanPolicy

R = TypeVar("R", bound=Resource)


@dataclass(frozen=True)
class EngineContext:
    """Provider, default organization and cancellation signal for one run.

    Handlers call :meth:`check_canceled` right before each request so that
    a cancel set mid-apply stops the next call rather than the current one.
    """

    provider: TFEProvider
    organization: str
    cancel: threading.Event = field(default_factory=threading.Event)

    def check_canceled(self) -> None:
        if self.cancel.is_set():
            raise OperationCanceled("Canceled before contacting TFE")


class ResourceHandler(Generic[R]):
    """Translates one resource type into remote calls.

    Subclasses implement ``read``, ``create``, ``update`` and ``delete``.
    The plan hooks have defaults driven by the model's field markers.
    """

    def validate(self, ctx: EngineContext, desired: R) -> list[str]:
        """Problems found without contacting TFE, one message each."""
        return []

    def planned_attributes(self, ctx: EngineContext, desired: R) -> dict[str, Any]:
        return desired.model_dump(mode="json", exclude={"address", "name"})

    def replacement_policies(self, desired: R) -> list[PlanPolicy]:
        return [
            requires_replace(name, marker.description)
            for name, marker in marked_fields(desired, RequiresReplace).items()
        ]

    def computed_attributes(
        self, prior: Mapping[str, Any] | None, planned: Mapping[str, Any], *, replace: bool
    ) -> dict[str, Any]:
        return plan_computed_attributes(prior, planned, replace=replace)

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        """Current attributes, or ``None`` when the object is gone."""
        raise NotImplementedError(f"{type(self).__name__}.read")

    def create(self, ctx: EngineContext, desired: R) -> dict[str, Any]:
        raise NotImplementedError(f"{type(self).__name__}.create")

    def update(self, ctx: EngineContext, desired: R, prior: ResourceInstance) -> dict[str, Any]:
        raise NotImplementedError(f"{type(self).__name__}.update")

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        raise NotImplementedError(f"{type(self).__name__}.delete")
