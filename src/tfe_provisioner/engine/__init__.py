"""Plan/apply engine."""

from tfe_provisioner.engine.engine import ProgressCallback, TFEEngine
from tfe_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    EngineError,
    OperationCanceled,
    OperationError,
    PlanError,
    StalePlanError,
    StateError,
    ValidationError,
)
from tfe_provisioner.engine.handlers import EngineContext, ResourceHandler
from tfe_provisioner.engine.registry import Registration, ResourceTypeRegistry
from tfe_provisioner.engine.types import Action, ApplyResult, ChangeCounts, Plan, ResourceChange

__all__ = [
    "Action",
    "ApplyCanceled",
    "ApplyError",
    "ApplyResult",
    "ChangeCounts",
    "EngineContext",
    "EngineError",
    "OperationCanceled",
    "OperationError",
    "Plan",
    "PlanError",
    "ProgressCallback",
    "Registration",
    "ResourceChange",
    "ResourceHandler",
    "ResourceTypeRegistry",
    "StalePlanError",
    "StateError",
    "TFEEngine",
    "ValidationError",
]
