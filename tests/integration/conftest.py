"""Pytest fixtures for integration tests against a live TFE instance.

Set ``TFE_TOKEN``, ``TFE_ORGANIZATION``, ``TFE_TEST_MODULE_NAME`` and
``TFE_TEST_MODULE_PROVIDER`` (and optionally ``TFE_HOSTNAME``) to run them.
The registry module must already exist and have tests enabled.
"""

import os
from collections.abc import Generator
from dataclasses import dataclass
from pathlib import Path

import pytest

from tfe_provisioner.config.registry import default_registry
from tfe_provisioner.config.schema import ProviderConfig
from tfe_provisioner.core import TFEProvider
from tfe_provisioner.engine import TFEEngine

_REQUIRED = ("TFE_TOKEN", "TFE_ORGANIZATION", "TFE_TEST_MODULE_NAME", "TFE_TEST_MODULE_PROVIDER")


@dataclass(frozen=True)
class LiveModule:
    organization: str
    module_name: str
    module_provider: str


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    missing = [v for v in _REQUIRED if not os.environ.get(v)]
    if not missing:
        return
    skip = pytest.mark.skip(reason=f"missing {', '.join(missing)}")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


@pytest.fixture(scope="session")
def live_module() -> LiveModule:
    return LiveModule(
        organization=os.environ["TFE_ORGANIZATION"],
        module_name=os.environ["TFE_TEST_MODULE_NAME"],
        module_provider=os.environ["TFE_TEST_MODULE_PROVIDER"],
    )


@pytest.fixture(scope="session")
def tfe_provider(live_module: LiveModule) -> TFEProvider:
    return ProviderConfig(organization=live_module.organization).to_provider()


@pytest.fixture
def live_engine(
    tfe_provider: TFEProvider, live_module: LiveModule, tmp_path: Path
) -> Generator[TFEEngine]:
    """Engine with its own state file; anything left in state is destroyed afterwards."""
    engine = TFEEngine(
        provider=tfe_provider,
        organization=live_module.organization,
        state_path=tmp_path / "state.json",
        registry=default_registry(),
    )
    yield engine
    if engine.state_path.exists():
        engine.apply(engine.plan([], destroy=True))
