"""Engine exceptions, grouped by the phase that raises them."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tfe_provisioner.engine.types import ApplyResult


class EngineError(Exception):
    """Base exception for engine errors."""


# Plan-time: the configuration cannot be planned.


class PlanError(EngineError):
    pass


class UnknownResourceTypeError(PlanError):
    def __init__(self, resource_type: str) -> None:
        super().__init__(f"Unknown resource type: {resource_type}")
        self.resource_type = resource_type


class DuplicateAddressError(PlanError):
    def __init__(self, address: str) -> None:
        super().__init__(f"Duplicate resource address: {address}")
        self.address = address


class ValidationError(PlanError):
    """Desired resources rejected before any remote call; one message per problem."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Validation failed:\n" + "\n".join(f"  - {e}" for e in errors))


# State: the local state file is not the one expected.


class StateError(EngineError):
    pass


class StateOrganizationMismatchError(StateError):
    def __init__(self, expected: str, got: str) -> None:
        super().__init__(f"State belongs to organization {got!r}, not {expected!r}")
        self.expected = expected
        self.got = got


class StalePlanError(StateError):
    """State changed between plan and apply."""


class StateLockError(StateError):
    pass


# Remote operations.


class OperationError(EngineError):
    """A create, update or delete request failed.

    Rendered as ``Couldn't <verb> <subject>: <message>``, where ``subject``
    is ``env variable KEY`` for a create and ``variable <id>`` otherwise.
    """

    def __init__(self, verb: str, subject: str, message: str) -> None:
        super().__init__(f"Couldn't {verb} {subject}: {message}")
        self.verb = verb
        self.subject = subject


class OperationCanceled(EngineError):
    """Cancellation was requested before the next request went out."""


# Apply.


class ApplyError(EngineError):
    """An operation failed part way through an apply.

    ``result`` lists what was applied (and saved) before the failure; the
    underlying error is chained as ``__cause__``.
    """

    def __init__(self, result: ApplyResult, address: str, message: str) -> None:
        super().__init__(f"{address}: {message}")
        self.result = result
        self.address = address


class ApplyCanceled(EngineError):
    """Apply interrupted; ``result`` holds what finished first."""

    def __init__(self, result: ApplyResult) -> None:
        super().__init__("Apply canceled")
        self.result = result
