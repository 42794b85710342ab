"""Tests for the health service and the FastAPI routes."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from slmwatch.api.server import create_app
from slmwatch.errors import StateProviderError, UnknownIndicatorError
from slmwatch.health.indicator import SlmHealthIndicator
from slmwatch.health.models import HealthIndicatorResult, HealthStatus
from slmwatch.health.service import HealthReport, HealthService
from slmwatch.lifecycle.models import LifecycleState, OperationMode
from slmwatch.lifecycle.provider import StaticStateProvider

from conftest import policy

RED_GAP = 7_889_400_001


class FixedIndicator:
    """Stand-in indicator with a fixed status."""

    component = "test"
    help_url = "https://example.com/help"

    def __init__(self, name: str, status: HealthStatus) -> None:
        self.name = name
        self.status = status

    def calculate(self, explain: bool = False) -> HealthIndicatorResult:
        return HealthIndicatorResult(name=self.name, status=self.status, symptom=f"{self.name} is {self.status.value}")


class BrokenProvider:
    def get_state(self) -> LifecycleState:
        raise StateProviderError("Cluster is unreachable at http://cluster:9200")


@pytest.fixture
def provider() -> StaticStateProvider:
    return StaticStateProvider()


@pytest.fixture
def client(provider: StaticStateProvider) -> TestClient:
    service = HealthService([SlmHealthIndicator(provider)])
    return TestClient(create_app(service))


# ── HealthService ────────────────────────────────────────────────────────────


class TestHealthService:
    def test_empty_service_is_green(self) -> None:
        report = HealthService().get_health()
        assert report.status == HealthStatus.GREEN
        assert report.indicators == {}

    def test_worst_indicator_wins(self) -> None:
        service = HealthService([
            FixedIndicator("disk", HealthStatus.GREEN),
            FixedIndicator("slm", HealthStatus.RED),
            FixedIndicator("ilm", HealthStatus.YELLOW),
        ])
        report = service.get_health()
        assert report.status == HealthStatus.RED
        assert list(report.indicators) == ["disk", "ilm", "slm"]

    def test_single_indicator(self) -> None:
        service = HealthService([FixedIndicator("disk", HealthStatus.GREEN), FixedIndicator("slm", HealthStatus.RED)])
        report = service.get_health("disk")
        assert report.status == HealthStatus.GREEN
        assert list(report.indicators) == ["disk"]

    def test_unknown_indicator(self) -> None:
        with pytest.raises(UnknownIndicatorError):
            HealthService().get_health("nope")

    def test_duplicate_name_rejected(self) -> None:
        with pytest.raises(ValueError):
            HealthService([FixedIndicator("slm", HealthStatus.GREEN), FixedIndicator("slm", HealthStatus.RED)])

    def test_provider_error_propagates(self) -> None:
        service = HealthService([SlmHealthIndicator(BrokenProvider())])
        with pytest.raises(StateProviderError):
            service.get_health()

    def test_report_to_dict(self) -> None:
        body = HealthService([FixedIndicator("slm", HealthStatus.YELLOW)]).get_health().to_dict()
        assert body == {
            "status": "yellow",
            "indicators": {"slm": {"status": "yellow", "symptom": "slm is yellow"}},
        }

    def test_report_is_read_only(self) -> None:
        source = {"slm": HealthIndicatorResult("slm", HealthStatus.GREEN, "ok")}
        report = HealthReport(HealthStatus.GREEN, source)
        source["disk"] = HealthIndicatorResult("disk", HealthStatus.RED, "full")
        assert list(report.indicators) == ["slm"]
        with pytest.raises(TypeError):
            report.indicators["disk"] = source["disk"]  # type: ignore[index]


# ── Routes ───────────────────────────────────────────────────────────────────


class TestHealthRoutes:
    def test_no_policies(self, client: TestClient) -> None:
        resp = client.get("/_health_report")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "green"
        slm = data["indicators"]["slm"]
        assert slm["symptom"] == "No SLM policies configured"
        assert slm["details"] == {"operation_mode": "RUNNING", "policy_count": 0}

    def test_not_verbose_omits_details(self, client: TestClient) -> None:
        resp = client.get("/_health_report/slm", params={"verbose": "false"})
        assert resp.status_code == 200
        assert "details" not in resp.json()["indicators"]["slm"]

    def test_not_running(self, client: TestClient, provider: StaticStateProvider) -> None:
        provider.state = LifecycleState(
            operation_mode=OperationMode.STOPPED,
            policies={"daily": policy("daily", 0)},
        )
        data = client.get("/_health_report/slm").json()
        slm = data["indicators"]["slm"]
        assert data["status"] == "yellow"
        assert slm["impacts"] == [{
            "severity": 3,
            "description": "Scheduled snapshots are not running. "
                           "New backup snapshots will not be created automatically.",
            "impact_areas": ["backup"],
        }]
        assert slm["user_actions"][0]["id"] == "slm-not-running"
        assert slm["user_actions"][0]["help_url"] == "https://ela.st/fix-slm"

    def test_red_policy(self, client: TestClient, provider: StaticStateProvider) -> None:
        provider.state = LifecycleState(policies={"daily": policy("daily", RED_GAP)})
        slm = client.get("/_health_report/slm").json()["indicators"]["slm"]
        assert slm["status"] == "red"
        assert "daily" in slm["symptom"]
        assert slm["details"]["unhealthy_policies"] == {"daily": RED_GAP}
        assert slm["user_actions"][0]["affected_resources"] == ["daily"]

    def test_unknown_indicator_404(self, client: TestClient) -> None:
        resp = client.get("/_health_report/disk")
        assert resp.status_code == 404

    def test_provider_failure_503(self) -> None:
        service = HealthService([SlmHealthIndicator(BrokenProvider())])
        resp = TestClient(create_app(service)).get("/_health_report")
        assert resp.status_code == 503
        assert "unreachable" in resp.json()["detail"]
