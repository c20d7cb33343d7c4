"""Configuration file models."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, SecretStr, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tfe_provisioner.core.client import DEFAULT_ADDRESS
from tfe_provisioner.core.provider import TFEProvider, TokenAuth
from tfe_provisioner.resources.base import Resource  # noqa: TC001
from tfe_provisioner.resources.test_variable import TestVariableResource  # noqa: TC001


class ProviderConfig(BaseSettings):
    """Connection settings for HCP Terraform or a Terraform Enterprise host.

    Every field can also come from a ``TFE_``-prefixed environment variable
    (``TFE_HOSTNAME``, ``TFE_TOKEN``, ``TFE_ORGANIZATION``,
    ``TFE_SSL_SKIP_VERIFY``). Keep ``token`` out of the YAML file.
    """

    model_config = SettingsConfigDict(env_prefix="TFE_")

    hostname: str = DEFAULT_ADDRESS
    token: str | None = None
    organization: str
    ssl_skip_verify: bool = False

    @property
    def address(self) -> str:
        """Base URL; a bare hostname gets ``https://``."""
        host = self.hostname.rstrip("/")
        return host if "://" in host else f"https://{host}"

    def to_provider(self) -> TFEProvider:
        """Provider for API calls. Raises ``ValueError`` when no token is set."""
        if not self.token:
            raise ValueError("provider.token is required (set TFE_TOKEN)")
        return TFEProvider(
            hostname=self.address,
            auth=TokenAuth(token=SecretStr(self.token)),
            organization=self.organization,
            verify_ssl=not self.ssl_skip_verify,
        )


def _null_is_empty(v: Any) -> Any:
    return [] if v is None else v


class Config(BaseModel):
    """A parsed ``tfe-provisioner.yaml``."""

    provider: ProviderConfig
    state_path: Path = Path(".tfe-state.json")
    test_variables: Annotated[list[TestVariableResource], BeforeValidator(_null_is_empty)] = []
    config_dir: Path = Path()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def resources(self) -> list[Resource]:
        return list(self.test_variables)
