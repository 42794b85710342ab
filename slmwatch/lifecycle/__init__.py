"""Snapshot lifecycle state — models and the providers that supply them."""

from .models import LifecycleState, OperationMode, PolicyStatus
from .provider import (
    FileStateProvider,
    HttpStateProvider,
    StateProvider,
    StaticStateProvider,
    parse_lifecycle_state,
    provider_from_settings,
)
