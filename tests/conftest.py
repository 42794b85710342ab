"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from slmwatch.lifecycle.models import LifecycleState, OperationMode, PolicyStatus

T0 = 1_700_000_000_000  # 2023-11-14T22:13:20Z in epoch ms


def policy(name: str, gap_ms: int | None = None, **kwargs) -> PolicyStatus:
    """A policy whose last failure is ``gap_ms`` after its last success at T0."""
    if gap_ms is not None:
        kwargs.setdefault("last_success", T0)
        kwargs.setdefault("last_failure", T0 + gap_ms)
    return PolicyStatus(name=name, **kwargs)


@pytest.fixture
def make_state() -> Callable[..., LifecycleState]:
    def _make(*policies: PolicyStatus, mode: OperationMode = OperationMode.RUNNING) -> LifecycleState:
        return LifecycleState(operation_mode=mode, policies={p.name: p for p in policies})

    return _make


@pytest.fixture
def healthy_state(make_state) -> LifecycleState:
    return make_state(policy("daily", -60_000), policy("hourly", 1_000))
