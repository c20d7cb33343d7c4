"""Tests for the Python API over a configuration file."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from tfe_provisioner.config import drift_changes, engine_for, save_state
from tfe_provisioner.config.loader import ConfigError
from tfe_provisioner.config.schema import Config, ProviderConfig
from tfe_provisioner.core.client import TFEClient
from tfe_provisioner.core.state import ResourceInstance, State
from tfe_provisioner.engine.types import Action


def _instance(**attrs: object) -> ResourceInstance:
    return ResourceInstance(
        address="tfe_test_variable.foo",
        resource_type="tfe_test_variable",
        name="foo",
        attributes={"id": "var-1", "key": "FOO", "value": "bar", **attrs},
    )


def _config(**provider: object) -> Config:
    return Config(provider=ProviderConfig(organization="acme", token="t", **provider))


class TestEngineFor:
    def test_organization_and_default_state_path(self) -> None:
        engine = engine_for(_config())
        assert engine.organization == "acme"
        assert engine.state_path == Path(".tfe-state.json")

    def test_custom_state_path(self) -> None:
        config = Config(
            provider=ProviderConfig(organization="acme", token="t"),
            state_path=Path("custom.json"),
        )
        assert engine_for(config).state_path == Path("custom.json")

    def test_missing_token_is_a_config_error(self) -> None:
        config = Config(provider=ProviderConfig(organization="acme"))
        with pytest.raises(ConfigError, match="TFE_TOKEN"):
            engine_for(config)

    def test_cancel_event_is_shared(self) -> None:
        cancel = threading.Event()
        assert engine_for(_config(), cancel=cancel).cancel is cancel

    def test_provider_wiring(self) -> None:
        provider = engine_for(_config(hostname="tfe.example.com", ssl_skip_verify=True))._provider
        assert provider.hostname == "https://tfe.example.com"
        assert provider.verify_ssl is False
        assert provider.organization == "acme"
        client = provider.client
        assert isinstance(client, TFEClient)
        assert client.address == "https://tfe.example.com"


class TestDriftChanges:
    def test_no_drift(self) -> None:
        old = State(organization="acme", resources={"tfe_test_variable.foo": _instance()})
        assert drift_changes(old, old.model_copy(deep=True)) == []

    def test_changed_attribute(self) -> None:
        old = State(organization="acme", resources={"tfe_test_variable.foo": _instance()})
        new = State(
            organization="acme",
            resources={"tfe_test_variable.foo": _instance(description="edited")},
        )

        [change] = drift_changes(old, new)

        assert change.action == Action.UPDATE
        assert change.diff == {"description": {"from": None, "to": "edited"}}
        assert change.sensitive == ["value"]

    def test_deleted_remotely(self) -> None:
        old = State(organization="acme", resources={"tfe_test_variable.foo": _instance()})

        [change] = drift_changes(old, State(organization="acme"))

        assert change.action == Action.DELETE
        assert change.address == "tfe_test_variable.foo"
        assert change.prior is not None
        assert change.prior["id"] == "var-1"


def test_save_state_bumps_serial(tmp_path: Path) -> None:
    config = Config(
        provider=ProviderConfig(organization="acme"), state_path=tmp_path / "state.json"
    )
    state = State(organization="acme")

    save_state(config, state)
    save_state(config, state)

    assert State.load(tmp_path / "state.json").serial == 2
