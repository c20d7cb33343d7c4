"""Built-in resource types."""

from tfe_provisioner.engine.registry import ResourceTypeRegistry
from tfe_provisioner.engine.test_variable_handler import TestVariableHandler
from tfe_provisioner.resources.test_variable import TestVariableResource


def default_registry() -> ResourceTypeRegistry:
    registry = ResourceTypeRegistry()
    registry.register(TestVariableResource, TestVariableHandler())
    return registry
