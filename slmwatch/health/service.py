"""Health service — polls registered indicators and aggregates a report.

The overall status is the worst indicator status; an empty service is GREEN.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Protocol

from slmwatch.errors import UnknownIndicatorError
from slmwatch.health.models import HealthIndicatorResult, HealthStatus

logger = logging.getLogger(__name__)


class HealthIndicator(Protocol):
    name: str
    component: str
    help_url: str

    def calculate(self, explain: bool = False) -> HealthIndicatorResult: ...


@dataclass(frozen=True)
class HealthReport:
    status: HealthStatus
    indicators: Mapping[str, HealthIndicatorResult] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "indicators", MappingProxyType(dict(self.indicators)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "indicators": {name: r.to_dict() for name, r in self.indicators.items()},
        }


class HealthService:
    """Registry of health indicators keyed by their unique name."""

    def __init__(self, indicators: Iterable[HealthIndicator] = ()) -> None:
        self._indicators: dict[str, HealthIndicator] = {}
        for indicator in indicators:
            self.register(indicator)

    def register(self, indicator: HealthIndicator) -> None:
        if indicator.name in self._indicators:
            raise ValueError(f"Health indicator '{indicator.name}' is already registered")
        self._indicators[indicator.name] = indicator

    @property
    def names(self) -> list[str]:
        return sorted(self._indicators)

    def get(self, name: str) -> HealthIndicator:
        try:
            return self._indicators[name]
        except KeyError:
            raise UnknownIndicatorError(name) from None

    def get_health(self, indicator_name: str | None = None, explain: bool = True) -> HealthReport:
        """Evaluate one named indicator, or all of them."""
        if indicator_name is not None:
            targets = [self.get(indicator_name)]
        else:
            targets = [self._indicators[n] for n in self.names]

        results = {i.name: i.calculate(explain=explain) for i in targets}
        status = max((r.status for r in results.values()), default=HealthStatus.GREEN)
        logger.debug(
            "Health report: %s (%s)",
            status.value,
            ", ".join(f"{n}={r.status.value}" for n, r in results.items()) or "no indicators",
        )
        return HealthReport(status=status, indicators=results)
