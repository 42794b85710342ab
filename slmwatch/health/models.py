"""Result types produced by health indicators."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class HealthStatus(str, Enum):
    """Indicator status, ordered by severity: GREEN < YELLOW < RED."""

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, HealthStatus):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, HealthStatus):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, HealthStatus):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, HealthStatus):
            return NotImplemented
        return self.rank >= other.rank


_RANKS = {HealthStatus.GREEN: 0, HealthStatus.YELLOW: 1, HealthStatus.RED: 2}


class ImpactArea(str, Enum):
    SEARCH = "search"
    INGEST = "ingest"
    BACKUP = "backup"
    DEPLOYMENT_MANAGEMENT = "deployment_management"


@dataclass(frozen=True)
class HealthIndicatorImpact:
    """Operational consequence of a status. Severity 1 is the most severe."""

    severity: int
    description: str
    impact_areas: tuple[ImpactArea, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity,
            "description": self.description,
            "impact_areas": [a.value for a in self.impact_areas],
        }


@dataclass(frozen=True)
class UserActionDefinition:
    id: str
    action: str
    help_url: str


@dataclass(frozen=True)
class UserAction:
    """A remediation step, optionally scoped to specific resources."""

    definition: UserActionDefinition
    affected_resources: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.definition.id,
            "action": self.definition.action,
            "help_url": self.definition.help_url,
        }
        if self.affected_resources:
            d["affected_resources"] = list(self.affected_resources)
        return d


@dataclass(frozen=True)
class HealthIndicatorResult:
    """Outcome of one indicator evaluation."""

    name: str
    status: HealthStatus
    symptom: str
    details: Mapping[str, Any] = field(default_factory=dict)
    impacts: tuple[HealthIndicatorImpact, ...] = ()
    actions: tuple[UserAction, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "status": self.status.value,
            "symptom": self.symptom,
        }
        if self.details:
            d["details"] = dict(self.details)
        if self.impacts:
            d["impacts"] = [i.to_dict() for i in self.impacts]
        if self.actions:
            d["user_actions"] = [a.to_dict() for a in self.actions]
        return d
