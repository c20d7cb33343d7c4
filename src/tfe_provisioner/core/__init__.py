"""Core infrastructure components for TFE Provisioner."""

from tfe_provisioner.core.client import NotFoundError, TFEClient, TFEError, Variable
from tfe_provisioner.core.module_scope import RegistryModuleID, ScopeError, resolve_module_id
from tfe_provisioner.core.provider import (
    ProviderConfigurationError,
    SupportsTestVariables,
    TFEProvider,
    TokenAuth,
)
from tfe_provisioner.core.state import ResourceInstance, State

__all__ = [
    "NotFoundError",
    "ProviderConfigurationError",
    "RegistryModuleID",
    "ResourceInstance",
    "ScopeError",
    "State",
    "SupportsTestVariables",
    "TFEClient",
    "TFEError",
    "TFEProvider",
    "TokenAuth",
    "Variable",
    "resolve_module_id",
]
