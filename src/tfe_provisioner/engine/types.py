"""Plan and apply result models."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, NamedTuple

from pydantic import BaseModel, Field


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"
    NOOP = "no-op"


class ChangeCounts(NamedTuple):
    """``add / change / destroy`` tally; a replacement is one add plus one destroy."""

    add: int = 0
    change: int = 0
    destroy: int = 0

    @classmethod
    def of(cls, changes: Iterable[ResourceChange]) -> ChangeCounts:
        add = change = destroy = 0
        for c in changes:
            add += c.action in (Action.CREATE, Action.REPLACE)
            change += c.action == Action.UPDATE
            destroy += c.action in (Action.DELETE, Action.REPLACE)
        return cls(add, change, destroy)

    @property
    def total(self) -> int:
        return self.add + self.change + self.destroy


class PlanMetadata(BaseModel):
    """Where a plan came from, checked again before it is applied."""

    organization: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    destroy: bool = False
    refresh: bool = True
    state_lineage: str
    state_serial: int
    state_digest: str
    config_digest: str
    tool_version: str


class ResourceChange(BaseModel):
    """A planned change to one resource instance.

    ``planned`` holds every attribute whose post-apply value is already
    known; computed attributes that only the apply can determine are listed
    in ``unknown`` instead. ``requires_replace`` names the attributes that
    forced a replacement and ``sensitive`` the ones never to display.
    """

    address: str
    resource_type: str
    action: Action
    desired: dict[str, Any] | None = None
    prior: dict[str, Any] | None = None
    planned: dict[str, Any] | None = None
    diff: dict[str, Any] | None = None
    unknown: list[str] = Field(default_factory=list)
    requires_replace: list[str] = Field(default_factory=list)
    sensitive: list[str] = Field(default_factory=list)

    @property
    def name(self) -> str:
        return self.address.partition(".")[2] or self.address


class Plan(BaseModel):
    metadata: PlanMetadata
    changes: list[ResourceChange]

    @property
    def actionable(self) -> list[ResourceChange]:
        return [c for c in self.changes if c.action != Action.NOOP]

    def counts(self) -> ChangeCounts:
        return ChangeCounts.of(self.changes)

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2) + "\n", encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> Plan:
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))


class ApplyResult(BaseModel):
    applied: list[ResourceChange] = Field(default_factory=list)

    def counts(self) -> ChangeCounts:
        return ChangeCounts.of(self.applied)
