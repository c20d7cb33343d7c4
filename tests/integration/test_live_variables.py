"""Integration tests against a live TFE instance.

Each test manages its own variables and destroys them on teardown.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import pytest

from tfe_provisioner.core.module_scope import resolve_module_id
from tfe_provisioner.core.state import State
from tfe_provisioner.engine.types import Action
from tfe_provisioner.resources.test_variable import TestVariableResource

if TYPE_CHECKING:
    from tfe_provisioner.core import TFEProvider
    from tfe_provisioner.engine import TFEEngine

    from .conftest import LiveModule

pytestmark = pytest.mark.integration


def _var(module: LiveModule, key: str, **kw: object) -> TestVariableResource:
    return TestVariableResource(
        name=key.lower(),
        key=key,
        category="env",
        module_name=module.module_name,
        module_provider=module.module_provider,
        **kw,
    )


def test_list_test_variables(tfe_provider: TFEProvider, live_module: LiveModule) -> None:
    module_id = resolve_module_id(
        live_module.organization, live_module.module_name, live_module.module_provider
    )
    variables = tfe_provider.client.test_variables.list(module_id)
    assert isinstance(variables, list)


def test_variable_lifecycle(live_engine: TFEEngine, live_module: LiveModule) -> None:
    key = f"TFE_PROVISIONER_IT_{uuid.uuid4().hex[:8].upper()}"

    live_engine.apply(live_engine.plan([_var(live_module, key, value="one")]))
    attrs = State.load(live_engine.state_path).resources[f"tfe_test_variable.{key.lower()}"]
    first_id = attrs.attributes["id"]
    assert attrs.attributes["readable_value"] == "one"

    live_engine.apply(live_engine.plan([_var(live_module, key, value="one", sensitive=True)]))
    plan = live_engine.plan([_var(live_module, key, value="one", sensitive=True)])
    assert plan.changes[0].action == Action.NOOP
    assert plan.changes[0].prior is not None
    assert plan.changes[0].prior["id"] == first_id

    plan = live_engine.plan([_var(live_module, key, value="one")])
    assert plan.changes[0].action == Action.REPLACE
    live_engine.apply(plan)
