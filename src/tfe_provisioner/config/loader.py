"""Load and check ``tfe-provisioner.yaml``."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dotenv import dotenv_values
from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.constructor import SafeConstructor

from tfe_provisioner.config.schema import Config

if TYPE_CHECKING:
    from collections.abc import Iterable

    from tfe_provisioner.resources.test_variable import TestVariableResource

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """The configuration file cannot be read or is invalid."""


PROVIDER_ENV = {
    "hostname": "TFE_HOSTNAME",
    "token": "TFE_TOKEN",
    "organization": "TFE_ORGANIZATION",
    "ssl_skip_verify": "TFE_SSL_SKIP_VERIFY",
}


def _parse_bool(env_key: str, raw: str) -> bool:
    try:
        return SafeConstructor.bool_values[raw.lower()]
    except KeyError:
        raise ConfigError(f"Invalid boolean for {env_key}: {raw!r}") from None


def _provider_settings(yaml_provider: Mapping[str, Any], config_dir: Path) -> dict[str, Any]:
    """Provider fields with YAML first, then the process env, then ``<config_dir>/.env``."""
    env_file = config_dir / ".env"
    layers: list[Mapping[str, Any]] = [
        {key: yaml_provider.get(field) for field, key in PROVIDER_ENV.items()},
        os.environ,
        dotenv_values(env_file, encoding="utf-8-sig") if env_file.is_file() else {},
    ]
    settings: dict[str, Any] = {}
    for field, env_key in PROVIDER_ENV.items():
        value = next((layer[env_key] for layer in layers if layer.get(env_key) is not None), None)
        if value is None:
            continue
        if field == "ssl_skip_verify" and isinstance(value, str):
            value = _parse_bool(env_key, value)
        settings[field] = value
    return settings


def find_duplicates(
    variables: Iterable[TestVariableResource], default_organization: str
) -> list[str]:
    """Repeated resource names, and keys declared twice for the same module."""
    errors: list[str] = []
    addresses: set[str] = set()
    owners: dict[tuple[str, str | None, str | None, str], str] = {}
    for v in variables:
        if v.address in addresses:
            errors.append(f"Duplicate resource address '{v.address}'")
        addresses.add(v.address)

        org = v.organization or default_organization
        slot = (org, v.module_name, v.module_provider, v.key)
        if slot in owners:
            errors.append(
                f"Duplicate variable key '{v.key}' in module "
                f"{org}/{v.module_name}/{v.module_provider}: "
                f"found in both {owners[slot]} and {v.address}"
            )
        else:
            owners[slot] = v.address
    return errors


def load_config(path: Path | str) -> Config:
    """Parse *path* into a :class:`Config`.

    Raises:
        ConfigError: unreadable YAML, schema violations or duplicate declarations.
    """
    path = Path(path)
    try:
        raw = YAML(typ="safe").load(path)
    except Exception as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    raw["provider"] = _provider_settings(raw.get("provider") or {}, path.parent)
    try:
        config = Config.model_validate({**raw, "config_dir": path.parent})
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    errors = find_duplicates(config.test_variables, config.provider.organization)
    if errors:
        raise ConfigError("\n".join(errors))

    logger.info("Loaded %d test variables from %s", len(config.test_variables), path)
    return config
