"""Dispatch table from ``resource_type`` to model class and handler."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple

from tfe_provisioner.engine.errors import UnknownResourceTypeError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from tfe_provisioner.engine.handlers import ResourceHandler
    from tfe_provisioner.resources.base import Resource


class Registration(NamedTuple):
    model: type[Resource]
    handler: ResourceHandler[Any]


class ResourceTypeRegistry:
    def __init__(self) -> None:
        self._types: dict[str, Registration] = {}

    def register(self, model: type[Resource], handler: ResourceHandler[Any]) -> None:
        resource_type = getattr(model, "resource_type", "")
        if not resource_type:
            raise ValueError(f"{model.__name__} does not declare a resource_type")
        if resource_type in self._types:
            raise ValueError(f"Resource type already registered: {resource_type}")
        self._types[resource_type] = Registration(model, handler)

    def __getitem__(self, resource_type: str) -> Registration:
        try:
            return self._types[resource_type]
        except KeyError:
            raise UnknownResourceTypeError(resource_type) from None

    def __contains__(self, resource_type: object) -> bool:
        return resource_type in self._types

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def handler_for(self, resource_type: str) -> ResourceHandler[Any]:
        return self[resource_type].handler
