"""Health subsystem — result models, the SLM indicator, report aggregation."""

from .indicator import DEFAULT_THRESHOLDS, SlmHealthIndicator, Thresholds, evaluate
from .models import (
    HealthIndicatorImpact,
    HealthIndicatorResult,
    HealthStatus,
    ImpactArea,
    UserAction,
    UserActionDefinition,
)
from .service import HealthReport, HealthService
