"""Common base for desired-state resource models."""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, computed_field

NAME_PATTERN = r"^[a-zA-Z_][a-zA-Z0-9_-]*$"


class Resource(BaseModel):
    """Desired configuration for one managed object.

    Models carry data only. ``name`` is a local label; together with the
    class-level ``resource_type`` it forms the state address.
    """

    model_config = ConfigDict(extra="forbid")

    resource_type: ClassVar[str]

    name: str = Field(pattern=NAME_PATTERN)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def address(self) -> str:
        return f"{self.resource_type}.{self.name}"
