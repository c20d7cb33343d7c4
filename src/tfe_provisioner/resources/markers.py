"""``Annotated`` markers that carry plan semantics on resource fields.

A field declared as ``Annotated[str, Sensitive()]`` is redacted wherever a
plan or a log line would show it. ``Annotated[str, RequiresReplace()]``
means TFE cannot change the attribute on an existing variable, so a new
value destroys and recreates it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel

REDACTED = "(sensitive value)"

_M = TypeVar("_M", bound="FieldMarker")


class FieldMarker:
    """Base for field markers; subclasses are plain frozen dataclasses."""


@dataclass(frozen=True, slots=True)
class Sensitive(FieldMarker):
    """Secret value: shown as ``(sensitive value)`` and never logged."""


@dataclass(frozen=True, slots=True)
class RequiresReplace(FieldMarker):
    """Immutable once created. ``description`` explains the constraint."""

    description: str = ""


def marked_fields(model: BaseModel | type[BaseModel], marker: type[_M]) -> dict[str, _M]:
    """Map field name to its *marker* instance, in declaration order."""
    cls = model if isinstance(model, type) else type(model)
    found: dict[str, _M] = {}
    for name, info in cls.model_fields.items():
        for meta in info.metadata:
            if isinstance(meta, marker):
                found[name] = meta
                break
    return found


def collect_sensitive_fields(model: Any) -> list[str]:
    return list(marked_fields(model, Sensitive))


def redact(attrs: dict[str, Any], sensitive: list[str]) -> dict[str, Any]:
    """Copy of *attrs* with every non-empty sensitive value masked."""
    return {k: REDACTED if k in sensitive and v not in (None, "") else v for k, v in attrs.items()}
