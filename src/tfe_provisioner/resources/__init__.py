"""TFE resource definitions."""

from tfe_provisioner.resources.base import Resource
from tfe_provisioner.resources.test_variable import Category, TestVariableResource

__all__ = [
    "Category",
    "Resource",
    "TestVariableResource",
]
