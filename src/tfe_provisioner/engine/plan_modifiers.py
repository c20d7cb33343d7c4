"""Plan-time policies.

A policy inspects the prior observed attributes and the proposed (planned)
attributes of one resource and decides whether the change can be applied
in place. Policies are independent; any one requiring replacement forces a
destroy + recreate regardless of the others.

Computed attributes are derived here as well. A computed value that cannot
be known before apply is returned as ``UNKNOWN`` and is never guessed.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeAlias


class _Unknown:
    __slots__ = ()

    def __repr__(self) -> str:
        return "UNKNOWN"


UNKNOWN: Any = _Unknown()


@dataclass(frozen=True)
class ReplacementDecision:
    requires_replace: bool = False
    attribute: str | None = None
    reason: str = ""


NO_REPLACEMENT = ReplacementDecision()

PlanPolicy: TypeAlias = Callable[[Mapping[str, Any], Mapping[str, Any]], ReplacementDecision]


def requires_replace(attribute: str, reason: str = "") -> PlanPolicy:
    """Policy forcing replacement whenever *attribute* changes."""

    def _policy(prior: Mapping[str, Any], proposed: Mapping[str, Any]) -> ReplacementDecision:
        if attribute in proposed and proposed[attribute] != prior.get(attribute):
            return ReplacementDecision(
                True, attribute, reason or f"{attribute} cannot be changed in place"
            )
        return NO_REPLACEMENT

    _policy.__name__ = f"requires_replace_{attribute}"
    return _policy


def key_replace_if_sensitive(
    prior: Mapping[str, Any], proposed: Mapping[str, Any]
) -> ReplacementDecision:
    """Renaming a sensitive variable forces replacement."""
    if prior.get("sensitive") and proposed.get("key") != prior.get("key"):
        return ReplacementDecision(True, "key", "key changed and sensitive is true")
    return NO_REPLACEMENT


def sensitive_downgrade_replace(
    prior: Mapping[str, Any], proposed: Mapping[str, Any]
) -> ReplacementDecision:
    """A write-only value cannot be revealed, so true -> false forces replacement."""
    if prior.get("sensitive") and not proposed.get("sensitive"):
        return ReplacementDecision(True, "sensitive", "sensitive changed from true to false")
    return NO_REPLACEMENT


def evaluate_replacement(
    policies: Iterable[PlanPolicy],
    prior: Mapping[str, Any],
    proposed: Mapping[str, Any],
) -> list[ReplacementDecision]:
    """Run every policy and return the decisions that require replacement."""
    return [
        decision
        for policy in policies
        if (decision := policy(prior, proposed)).requires_replace
    ]


def plan_readable_value(prior: Mapping[str, Any] | None, proposed: Mapping[str, Any]) -> Any:
    """Planned ``readable_value``.

    Stays at the prior observed value while neither ``value`` nor
    ``sensitive`` changes; otherwise it is only known after apply.
    """
    if prior is None:
        return UNKNOWN
    if proposed.get("sensitive") == prior.get("sensitive") and proposed.get("value") == prior.get(
        "value"
    ):
        return prior.get("readable_value")
    return UNKNOWN


def plan_computed_attributes(
    prior: Mapping[str, Any] | None,
    proposed: Mapping[str, Any],
    *,
    replace: bool = False,
) -> dict[str, Any]:
    """Planned values for ``id`` and ``readable_value``.

    ``id`` carries over from state unless the instance is being (re)created.
    """
    if prior is None or replace:
        return {"id": UNKNOWN, "readable_value": UNKNOWN}
    return {
        "id": prior.get("id", UNKNOWN),
        "readable_value": plan_readable_value(prior, proposed),
    }
