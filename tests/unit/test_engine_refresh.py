from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from tfe_provisioner.core.state import State
from tfe_provisioner.engine.types import Action
from tfe_provisioner.resources.test_variable import TestVariableResource

if TYPE_CHECKING:
    from tfe_provisioner.engine import TFEEngine

    from .conftest import RecordingVariables


def _var(**overrides: Any) -> TestVariableResource:
    fields: dict[str, Any] = {
        "name": "region",
        "key": "AWS_REGION",
        "value": "eu-west-1",
        "category": "env",
        "module_name": "vpc",
        "module_provider": "aws",
    }
    fields.update(overrides)
    return TestVariableResource(**fields)


def _edit_remote(api: RecordingVariables, **changes: Any) -> None:
    [(variable_id, (module_id, variable))] = api.store.items()
    api.store[variable_id] = (module_id, variable.model_copy(update=changes))


def test_refresh_updates_state_and_writes_backup(
    engine: TFEEngine, variables_api: RecordingVariables
) -> None:
    engine.apply(engine.plan([_var()]))
    _edit_remote(variables_api, value="us-east-1")

    before, after = engine.refresh(persist=True)

    addr = "tfe_test_variable.region"
    assert before.resources[addr].attributes["value"] == "eu-west-1"
    assert after.resources[addr].attributes["value"] == "us-east-1"
    assert after.resources[addr].attributes["readable_value"] == "us-east-1"

    state = State.load(engine.state_path)
    assert state.serial == 2
    assert state.resources[addr].attributes["value"] == "us-east-1"
    assert Path(str(engine.state_path) + ".backup").exists()


def test_refresh_without_persist_leaves_file(
    engine: TFEEngine, variables_api: RecordingVariables
) -> None:
    engine.apply(engine.plan([_var()]))
    _edit_remote(variables_api, description="edited in the UI")

    _, after = engine.refresh()

    assert after.resources["tfe_test_variable.region"].attributes["description"] == (
        "edited in the UI"
    )
    assert State.load(engine.state_path).serial == 1


def test_refresh_drops_deleted_variables(
    engine: TFEEngine, variables_api: RecordingVariables
) -> None:
    engine.apply(engine.plan([_var()]))
    variables_api.store.clear()

    _, after = engine.refresh(persist=True)

    assert after.resources == {}
    assert State.load(engine.state_path).resources == {}


def test_refresh_keeps_last_sensitive_value(
    engine: TFEEngine, variables_api: RecordingVariables
) -> None:
    engine.apply(engine.plan([_var(sensitive=True)]))
    # Rotating the secret remotely is invisible: TFE never returns it.
    _edit_remote(variables_api, value="rotated")

    before, after = engine.refresh()

    assert after.resources == before.resources
    assert after.resources["tfe_test_variable.region"].attributes["value"] == "eu-west-1"


def test_plan_corrects_remote_drift(engine: TFEEngine, variables_api: RecordingVariables) -> None:
    engine.apply(engine.plan([_var()]))
    _edit_remote(variables_api, value="us-east-1")

    change = engine.plan([_var()]).changes[0]

    assert change.action == Action.UPDATE
    assert change.diff is not None
    assert change.diff["value"] == {"from": "us-east-1", "to": "eu-west-1"}


def test_refresh_false_skips_remote_reads(
    engine: TFEEngine, variables_api: RecordingVariables
) -> None:
    engine.apply(engine.plan([_var()]))
    variables_api.calls.clear()

    engine.plan([_var()], refresh=False)

    assert variables_api.calls == []
