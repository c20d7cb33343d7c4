"""Registry-module scope for test variables.

Test variables belong to a private registry module. Every API call addresses
the module by organization, module name and provider; the namespace of a
private module is always its organization.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import quote

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

PRIVATE_REGISTRY = "private"


class ScopeError(ValueError):
    """Raised when a module scope cannot be resolved."""

    def __init__(self, attribute: str) -> None:
        super().__init__(f"{attribute} must be set to address the registry module")
        self.attribute = attribute


@dataclass(frozen=True)
class RegistryModuleID:
    organization: str
    name: str
    provider: str
    namespace: str
    registry_name: str = PRIVATE_REGISTRY

    @property
    def api_path(self) -> str:
        segments = (self.registry_name, self.namespace, self.name, self.provider)
        escaped = "/".join(quote(s, safe="") for s in segments)
        return f"organizations/{quote(self.organization, safe='')}/tests/registry-modules/{escaped}"

    def attributes(self) -> dict[str, str]:
        """Scope attributes as recorded in state."""
        return {
            "organization": self.organization,
            "module_name": self.name,
            "module_provider": self.provider,
        }


def _required(attribute: str, value: str | None) -> str:
    if not value:
        raise ScopeError(attribute)
    return value


def resolve_module_id(
    organization: str | None,
    module_name: str | None,
    module_provider: str | None,
    *,
    default_organization: str | None = None,
) -> RegistryModuleID:
    """Build the module identifier, falling back to the provider's organization."""
    org = _required("organization", organization or default_organization)
    return RegistryModuleID(
        organization=org,
        name=_required("module_name", module_name),
        provider=_required("module_provider", module_provider),
        namespace=org,
    )


def module_id_from_attributes(
    attrs: Mapping[str, Any], *, default_organization: str | None = None
) -> RegistryModuleID:
    """Resolve the module identifier recorded in a stored attribute dict."""
    return resolve_module_id(
        attrs.get("organization"),
        attrs.get("module_name"),
        attrs.get("module_provider"),
        default_organization=default_organization,
    )
