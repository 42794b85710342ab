"""Point-in-time view of snapshot lifecycle (SLM) metadata.

These types are what a state provider hands to the health indicator. They are
frozen so that one evaluation can never alter the view another caller holds.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any


class OperationMode(str, Enum):
    RUNNING = "RUNNING"
    STOPPING = "STOPPING"
    STOPPED = "STOPPED"

    @classmethod
    def parse(cls, value: Any) -> OperationMode | None:
        """Case-insensitive lookup; ``None`` for anything unrecognised."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


def _is_millis(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class PolicyStatus:
    """Execution record of a single snapshot lifecycle policy."""

    name: str
    last_success: int | None = None  # epoch ms, snapshot start
    last_failure: int | None = None  # epoch ms, snapshot finish
    last_success_snapshot: str = ""
    last_failure_snapshot: str = ""
    last_failure_details: str = ""

    @property
    def failure_gap_ms(self) -> int | None:
        """Time between the last success and the last failure after it.

        Negative when the success is more recent. ``None`` when either
        timestamp is missing or is not an integer.
        """
        if not (_is_millis(self.last_success) and _is_millis(self.last_failure)):
            return None
        return self.last_failure - self.last_success


@dataclass(frozen=True)
class LifecycleState:
    """Operation mode plus all configured policies, keyed by name."""

    operation_mode: OperationMode = OperationMode.RUNNING
    policies: Mapping[str, PolicyStatus] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Freeze a private copy so later edits to the caller's dict are not seen
        object.__setattr__(self, "policies", MappingProxyType(dict(self.policies)))

    @classmethod
    def empty(cls) -> LifecycleState:
        return cls()

    @property
    def policy_count(self) -> int:
        return len(self.policies)

    def sorted_policies(self) -> Iterator[PolicyStatus]:
        for name in sorted(self.policies, key=str):
            yield self.policies[name]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LifecycleState):
            return NotImplemented
        return (
            self.operation_mode == other.operation_mode
            and dict(self.policies) == dict(other.policies)
        )
