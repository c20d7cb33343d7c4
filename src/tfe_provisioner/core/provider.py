"""TFE Provider - Connection configuration for an HCP Terraform / TFE instance."""

from functools import cached_property
from typing import Any, Protocol, Self, cast

from pydantic import BaseModel, ConfigDict, SecretStr

from tfe_provisioner.core.client import DEFAULT_ADDRESS, TFEClient

_SERVICE_METHODS = ("list", "create", "update", "delete")


class VariablesService(Protocol):
    """Operations the provisioner needs on registry-module test variables."""

    def list(self, module_id: Any) -> Any: ...

    def create(self, module_id: Any, options: Any) -> Any: ...

    def update(self, module_id: Any, variable_id: str, options: Any) -> Any: ...

    def delete(self, module_id: Any, variable_id: str) -> Any: ...


class SupportsTestVariables(Protocol):
    """Capability a client handle must expose to manage test variables."""

    test_variables: VariablesService


class ProviderConfigurationError(TypeError):
    """The client handle supplied by the host does not have the expected shape.

    This is a wiring defect in the host program, not a problem with the
    user's configuration.
    """


def check_client(client: Any) -> SupportsTestVariables:
    """Fail fast if *client* cannot serve test-variable operations."""
    if client is None:
        raise ProviderConfigurationError(
            "Expected a client exposing test_variables, got None. "
            "This is a bug in the host integration."
        )
    service = getattr(client, "test_variables", None)
    if service is None or not all(callable(getattr(service, m, None)) for m in _SERVICE_METHODS):
        raise ProviderConfigurationError(
            "Expected a client exposing test_variables with list/create/update/delete, "
            f"got {type(client).__name__}. This is a bug in the host integration."
        )
    return cast("SupportsTestVariables", client)


class TokenAuth(BaseModel):
    """API token authentication for TFE."""

    token: SecretStr


class TFEProvider(BaseModel):
    """Connection configuration for a TFE instance.

    For external use, provide hostname and auth. Hosts that already hold an
    authenticated client use ``from_client`` instead; the handle is checked
    for the test-variables capability up front.

    Examples:
        provider = TFEProvider(
            hostname="https://app.terraform.io",
            auth=TokenAuth(token="my-token"),
            organization="acme",
        )

        provider = TFEProvider.from_client(existing_client, organization="acme")
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    hostname: str = DEFAULT_ADDRESS
    auth: TokenAuth | None = None
    organization: str | None = None
    verify_ssl: bool = True

    _injected_client: SupportsTestVariables | None = None

    @classmethod
    def from_client(cls, client: Any, *, organization: str | None = None) -> Self:
        """Create a provider with an injected, pre-authenticated client.

        Raises:
            ProviderConfigurationError: If *client* lacks the test-variables capability.
        """
        provider = cls.model_construct(organization=organization)
        provider._injected_client = check_client(client)
        return provider

    @cached_property
    def client(self) -> SupportsTestVariables:
        """Get the TFE client."""
        if self._injected_client is not None:
            return self._injected_client

        if self.auth is None:
            raise ValueError(
                "Either provide hostname+auth, or use TFEProvider.from_client() "
                "to inject a client"
            )

        return TFEClient(
            self.hostname,
            token=self.auth.token.get_secret_value(),
            verify_ssl=self.verify_ssl,
        )
