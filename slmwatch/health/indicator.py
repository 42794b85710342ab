"""SLM health indicator — maps snapshot lifecycle state to a health status.

GREEN  — no policies configured, or SLM running and every policy healthy
YELLOW — SLM not running while policies exist, or a policy whose last
         failure came more than ``yellow_ms`` after its last success
RED    — a policy whose last failure came more than ``red_ms`` after its
         last success

Evaluation is a pure function of the state and the thresholds: policies are
visited in name order and nothing is kept between calls.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from slmwatch.config import Settings, settings
from slmwatch.health.models import (
    HealthIndicatorImpact,
    HealthIndicatorResult,
    HealthStatus,
    ImpactArea,
    UserAction,
    UserActionDefinition,
)
from slmwatch.lifecycle.models import LifecycleState, OperationMode, PolicyStatus
from slmwatch.lifecycle.provider import StateProvider

logger = logging.getLogger(__name__)

NAME = "slm"
COMPONENT = "snapshot"
HELP_URL = "https://ela.st/fix-slm"

SLM_NOT_RUNNING = UserAction(
    UserActionDefinition("slm-not-running", "Start SLM using [POST /_slm/start].", HELP_URL),
)
SLM_POLICY_FAILING = UserActionDefinition(
    "slm-policy-failing",
    "Snapshots for the following SLM policies have been failing since their last success. "
    "Check the policy status using [GET /_slm/policy/<policy_id>?human] and the "
    "repository the policy writes to.",
    HELP_URL,
)

NOT_RUNNING_IMPACT = HealthIndicatorImpact(
    3,
    "Scheduled snapshots are not running. New backup snapshots will not be created automatically.",
    (ImpactArea.BACKUP,),
)

_IMPACT_SEVERITY = {HealthStatus.RED: 2, HealthStatus.YELLOW: 3}


# ── Thresholds ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Thresholds:
    """Limits on the gap between a policy's last success and its last failure."""

    red_ms: int = 7_889_400_000  # ~3 months
    yellow_ms: int = 2_400_000  # 40 minutes
    stop_at_first_breach: bool = False

    def __post_init__(self) -> None:
        if self.red_ms < 0 or self.yellow_ms < 0:
            raise ValueError("SLM thresholds must not be negative")
        if self.yellow_ms > self.red_ms:
            raise ValueError(
                f"yellow threshold ({self.yellow_ms} ms) exceeds red threshold ({self.red_ms} ms)"
            )

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> Thresholds:
        cfg = cfg or settings
        return cls(
            red_ms=cfg.slm_red_threshold_ms,
            yellow_ms=cfg.slm_yellow_threshold_ms,
            stop_at_first_breach=cfg.slm_stop_at_first_breach,
        )

    def classify(self, gap_ms: int) -> HealthStatus:
        if gap_ms > self.red_ms:
            return HealthStatus.RED
        if gap_ms > self.yellow_ms:
            return HealthStatus.YELLOW
        return HealthStatus.GREEN

    def limit_for(self, status: HealthStatus) -> int:
        return self.red_ms if status == HealthStatus.RED else self.yellow_ms


DEFAULT_THRESHOLDS = Thresholds()


@dataclass(frozen=True)
class PolicyBreach:
    policy: str
    gap_ms: int
    status: HealthStatus
    threshold_ms: int


# ── Evaluation ───────────────────────────────────────────────────────────────


def find_breaches(state: LifecycleState, thresholds: Thresholds) -> list[PolicyBreach]:
    """Policies whose failure gap exceeds a threshold, in name order."""
    breaches: list[PolicyBreach] = []
    for policy in state.sorted_policies():
        if not isinstance(policy, PolicyStatus):
            continue
        gap = policy.failure_gap_ms
        if gap is None:
            continue
        status = thresholds.classify(gap)
        if status == HealthStatus.GREEN:
            continue
        breaches.append(PolicyBreach(policy.name, gap, status, thresholds.limit_for(status)))
        if thresholds.stop_at_first_breach:
            break
    return breaches


def evaluate(
    state: LifecycleState | None,
    explain: bool = False,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> HealthIndicatorResult:
    """Derive the SLM indicator result from a point-in-time lifecycle state."""
    if not _is_well_formed(state):
        if state is not None:
            logger.warning("Malformed SLM state %r — reporting as no policies configured", state)
        state = LifecycleState.empty()

    if not state.policies:
        return _result(HealthStatus.GREEN, "No SLM policies configured", _details(explain, state))

    if state.operation_mode != OperationMode.RUNNING:
        return _result(
            HealthStatus.YELLOW,
            "SLM is not running",
            _details(explain, state),
            impacts=(NOT_RUNNING_IMPACT,),
            actions=(SLM_NOT_RUNNING,),
        )

    breaches = find_breaches(state, thresholds)
    if not breaches:
        return _result(HealthStatus.GREEN, "SLM is running", _details(explain, state))

    status = max(b.status for b in breaches)
    impacts = tuple(
        HealthIndicatorImpact(
            _IMPACT_SEVERITY[b.status],
            f"Automated snapshots for policy [{b.policy}] have been failing for {b.gap_ms} "
            f"milliseconds since the last success. Backups may not contain recent data.",
            (ImpactArea.BACKUP,),
        )
        for b in breaches
    )
    action = UserAction(SLM_POLICY_FAILING, tuple(b.policy for b in breaches))
    return _result(
        status,
        _breach_symptom(breaches),
        _details(explain, state, breaches),
        impacts=impacts,
        actions=(action,),
    )


def _is_well_formed(state: Any) -> bool:
    return (
        isinstance(state, LifecycleState)
        and isinstance(state.operation_mode, OperationMode)
        and isinstance(state.policies, Mapping)
    )


def _breach_symptom(breaches: list[PolicyBreach]) -> str:
    if len(breaches) == 1:
        b = breaches[0]
        return (
            f"Snapshot policy [{b.policy}] has been failing for {b.gap_ms} milliseconds "
            f"since its last success, exceeding the threshold of {b.threshold_ms} milliseconds"
        )
    names = ", ".join(b.policy for b in breaches)
    return (
        f"{len(breaches)} snapshot policies have not succeeded within their "
        f"thresholds: {names}"
    )


def _details(
    explain: bool,
    state: LifecycleState,
    breaches: list[PolicyBreach] | None = None,
) -> dict[str, Any]:
    if not explain:
        return {}
    details: dict[str, Any] = {
        "operation_mode": state.operation_mode.value,
        "policy_count": state.policy_count,
    }
    if breaches:
        details["unhealthy_policies"] = {b.policy: b.gap_ms for b in breaches}
    return details


def _result(
    status: HealthStatus,
    symptom: str,
    details: dict[str, Any],
    impacts: tuple[HealthIndicatorImpact, ...] = (),
    actions: tuple[UserAction, ...] = (),
) -> HealthIndicatorResult:
    return HealthIndicatorResult(
        name=NAME,
        status=status,
        symptom=symptom,
        details=details,
        impacts=impacts,
        actions=actions,
    )


# ── Indicator ────────────────────────────────────────────────────────────────


class SlmHealthIndicator:
    """Named indicator the health service polls.

    Holds no state between calls; every ``calculate`` reads a fresh state from
    the injected provider.
    """

    name = NAME
    component = COMPONENT
    help_url = HELP_URL

    def __init__(self, provider: StateProvider, thresholds: Thresholds | None = None) -> None:
        self.provider = provider
        self.thresholds = thresholds or DEFAULT_THRESHOLDS

    def calculate(self, explain: bool = False) -> HealthIndicatorResult:
        state = self.provider.get_state()
        result = evaluate(state, explain=explain, thresholds=self.thresholds)
        logger.debug("SLM indicator: %s (%s)", result.status.value, result.symptom)
        return result
