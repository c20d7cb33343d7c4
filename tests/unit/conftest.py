"""Shared fixtures for unit tests."""

from __future__ import annotations

import itertools
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any

import pytest

from tfe_provisioner.config import load
from tfe_provisioner.config.registry import default_registry
from tfe_provisioner.core.client import NotFoundError, TFEError, Variable
from tfe_provisioner.core.provider import TFEProvider
from tfe_provisioner.engine import TFEEngine
from tfe_provisioner.engine.handlers import EngineContext

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from tfe_provisioner.config.schema import Config
    from tfe_provisioner.core.client import VariableCreateOptions, VariableUpdateOptions
    from tfe_provisioner.core.module_scope import RegistryModuleID

_TFE_ENV_VARS = (
    "TFE_HOSTNAME",
    "TFE_TOKEN",
    "TFE_ORGANIZATION",
    "TFE_SSL_SKIP_VERIFY",
    "TFE_LOG",
    "TFE_LOG_PATH",
    "TFE_PROVISIONER_CONFIG",
)


@pytest.fixture(autouse=True)
def _clean_tfe_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host TFE_* settings out of unit tests."""
    for var in _TFE_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., Config]:
    """Factory fixture: write YAML + optional .env, return loaded Config."""

    def _make(yaml_str: str, *, dotenv: str | None = None) -> Config:
        (tmp_path / "config.yaml").write_text(yaml_str)
        if dotenv is not None:
            (tmp_path / ".env").write_text(dotenv)
        return load(tmp_path / "config.yaml")

    return _make


class RecordingVariables:
    """In-memory stand-in for the registry-module test variables API.

    Records every call as ``(method, *args)`` in ``calls``. Like TFE, it never
    echoes the value of a sensitive variable, and it rejects a key already
    taken in the module. Set ``errors[method]`` to make that method raise.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.errors: dict[str, Exception] = {}
        self.store: dict[str, tuple[RegistryModuleID, Variable]] = {}
        self._ids = itertools.count(1)

    def _public(self, variable: Variable) -> Variable:
        if variable.sensitive:
            return variable.model_copy(update={"value": ""})
        return variable

    def _maybe_fail(self, method: str) -> None:
        if method in self.errors:
            raise self.errors[method]

    def _check_key(self, module_id: RegistryModuleID, key: str, variable_id: str = "") -> None:
        for vid, (mid, v) in self.store.items():
            if mid == module_id and v.key == key and vid != variable_id:
                raise TFEError("Key has already been taken", status_code=422)

    def calls_to(self, method: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == method]

    def list(self, module_id: RegistryModuleID) -> list[Variable]:
        self.calls.append(("list", module_id))
        self._maybe_fail("list")
        return [self._public(v) for mid, v in self.store.values() if mid == module_id]

    def create(self, module_id: RegistryModuleID, options: VariableCreateOptions) -> Variable:
        self.calls.append(("create", module_id, options))
        self._maybe_fail("create")
        self._check_key(module_id, options.key)
        variable = Variable(id=f"var-{next(self._ids)}", **options.model_dump())
        self.store[variable.id] = (module_id, variable)
        return self._public(variable)

    def update(
        self, module_id: RegistryModuleID, variable_id: str, options: VariableUpdateOptions
    ) -> Variable:
        self.calls.append(("update", module_id, variable_id, options))
        self._maybe_fail("update")
        if variable_id not in self.store:
            raise NotFoundError("resource not found", status_code=404)
        _, current = self.store[variable_id]
        if options.key is not None:
            self._check_key(module_id, options.key, variable_id)
        variable = current.model_copy(update=options.model_dump(exclude_none=True))
        self.store[variable_id] = (module_id, variable)
        return self._public(variable)

    def delete(self, module_id: RegistryModuleID, variable_id: str) -> None:
        self.calls.append(("delete", module_id, variable_id))
        self._maybe_fail("delete")
        if variable_id not in self.store:
            raise NotFoundError("resource not found", status_code=404)
        del self.store[variable_id]


@pytest.fixture
def variables_api() -> RecordingVariables:
    return RecordingVariables()


@pytest.fixture
def provider(variables_api: RecordingVariables) -> TFEProvider:
    client = SimpleNamespace(test_variables=variables_api)
    return TFEProvider.from_client(client, organization="acme")


@pytest.fixture
def ctx(provider: TFEProvider) -> EngineContext:
    return EngineContext(provider=provider, organization="acme")


@pytest.fixture
def engine(provider: TFEProvider, tmp_path: Path) -> TFEEngine:
    return TFEEngine(
        provider=provider,
        organization="acme",
        state_path=tmp_path / "state.json",
        registry=default_registry(),
    )
