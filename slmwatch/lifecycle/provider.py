"""State providers — where the SLM health indicator gets its lifecycle state.

A provider returns one consistent, point-in-time LifecycleState per call.
Three are shipped:
  StaticStateProvider — a fixed state (tests, embedding)
  FileStateProvider   — a YAML/JSON document on disk, re-read on every call
  HttpStateProvider   — GET /_slm/status + GET /_slm/policy from a cluster

Failing to obtain state raises StateProviderError. Malformed *content* does
not: the parser logs it and falls back to the empty state, so a broken
document reports GREEN instead of failing the health check itself.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Protocol

import httpx
import yaml
from pydantic import BaseModel, ValidationError, field_validator

from slmwatch.config import Settings, settings
from slmwatch.errors import StateProviderError
from slmwatch.lifecycle.models import LifecycleState, OperationMode, PolicyStatus

logger = logging.getLogger(__name__)


class StateProvider(Protocol):
    def get_state(self) -> LifecycleState: ...


# ── Wire documents ───────────────────────────────────────────────────────────


def _coerce_millis(value: Any) -> int | None:
    """Epoch milliseconds from an int, a numeric string or an ISO-8601 string.

    YAML hands unquoted timestamps over as datetime / date objects already.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _datetime_millis(value)
    if isinstance(value, date):
        return _datetime_millis(datetime(value.year, value.month, value.day))
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if text.lstrip("-").isdigit():
        return int(text)
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Ignoring unparsable timestamp: %r", value)
        return None
    return _datetime_millis(dt)


def _datetime_millis(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


class InvocationRecord(BaseModel):
    """A single recorded snapshot attempt (``last_success`` / ``last_failure``)."""

    model_config = {"extra": "ignore"}

    snapshot_name: str = ""
    start_time: int | None = None
    time: int | None = None
    details: str = ""

    @field_validator("start_time", "time", mode="before")
    @classmethod
    def _millis(cls, v: Any) -> int | None:
        return _coerce_millis(v)

    @field_validator("snapshot_name", "details", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return "" if v is None else str(v)


class PolicyDocument(BaseModel):
    """One entry of the policy map, as returned by ``GET /_slm/policy``."""

    model_config = {"extra": "ignore"}

    last_success: InvocationRecord | None = None
    last_failure: InvocationRecord | None = None

    @field_validator("last_success", "last_failure", mode="before")
    @classmethod
    def _shorthand(cls, v: Any) -> Any:
        # A bare timestamp stands for {"time": <timestamp>}
        if v is None or isinstance(v, Mapping):
            return v
        return {"time": v}

    def to_status(self, name: str) -> PolicyStatus:
        success = self.last_success
        failure = self.last_failure
        return PolicyStatus(
            name=name,
            # success counts from when the snapshot started, failure from when it ended
            last_success=(
                success.start_time if success and success.start_time is not None
                else success.time if success else None
            ),
            last_failure=failure.time if failure else None,
            last_success_snapshot=success.snapshot_name if success else "",
            last_failure_snapshot=failure.snapshot_name if failure else "",
            last_failure_details=failure.details if failure else "",
        )


def parse_lifecycle_state(status_doc: Any, policies_doc: Any) -> LifecycleState:
    """Build a LifecycleState from a status document and a policy map.

    Never raises: anything that cannot be understood is logged and treated as
    "no policies configured".
    """
    if status_doc is None:
        status_doc = {}
    if not isinstance(status_doc, Mapping):
        logger.warning("SLM status document is not an object — treating as empty")
        return LifecycleState.empty()

    raw_mode = status_doc.get("operation_mode")
    if raw_mode is None:
        mode = OperationMode.RUNNING
    else:
        parsed = OperationMode.parse(raw_mode)
        if parsed is None:
            logger.warning("Unknown SLM operation mode %r — treating as empty", raw_mode)
            return LifecycleState.empty()
        mode = parsed

    if policies_doc is None:
        policies_doc = {}
    if not isinstance(policies_doc, Mapping):
        logger.warning("SLM policy map is not an object — treating as empty")
        return LifecycleState.empty()

    policies: dict[str, PolicyStatus] = {}
    for name, entry in policies_doc.items():
        if not isinstance(name, str) or not name:
            logger.warning("Skipping SLM policy with invalid name: %r", name)
            continue
        try:
            doc = PolicyDocument.model_validate(entry or {})
        except ValidationError as e:
            logger.warning("Skipping malformed SLM policy %s: %s", name, e)
            continue
        policies[name] = doc.to_status(name)

    return LifecycleState(operation_mode=mode, policies=policies)


# ── Providers ────────────────────────────────────────────────────────────────


class StaticStateProvider:
    """Always returns the state it was built with."""

    def __init__(self, state: LifecycleState | None = None) -> None:
        self.state = state or LifecycleState.empty()

    def get_state(self) -> LifecycleState:
        return self.state


class FileStateProvider:
    """Reads ``{operation_mode, policies}`` from a YAML or JSON file."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def get_state(self) -> LifecycleState:
        if not self._path.exists():
            raise StateProviderError(f"State file not found: {self._path}")

        try:
            raw = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise StateProviderError(f"Could not read state file {self._path}: {e}") from e

        if raw is None:
            return LifecycleState.empty()
        if not isinstance(raw, Mapping):
            logger.warning("State file %s does not hold an object — treating as empty", self._path)
            return LifecycleState.empty()

        state = parse_lifecycle_state(raw, raw.get("policies"))
        logger.debug("Loaded %d SLM policies from %s", state.policy_count, self._path)
        return state


class HttpStateProvider:
    """Synchronous httpx client for the cluster's SLM endpoints."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    @property
    def _headers(self) -> dict[str, str]:
        h = {"Accept": "application/json"}
        if self._api_key:
            h["Authorization"] = f"ApiKey {self._api_key}"
        return h

    def _get(self, path: str) -> Any:
        """GET a JSON document from the cluster."""
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                resp = client.get(f"{self._base_url}{path}", headers=self._headers)
        except httpx.ConnectError as e:
            raise StateProviderError(f"Cluster is unreachable at {self._base_url}") from e
        except httpx.TimeoutException as e:
            raise StateProviderError(f"Cluster request timed out: {path}") from e
        except httpx.HTTPError as e:
            raise StateProviderError(f"Cluster request failed: {path}: {e}") from e

        if resp.status_code >= 400:
            detail = resp.text
            try:
                body = resp.json()
                if isinstance(body, dict) and "error" in body:
                    detail = body["error"]
            except ValueError:
                pass
            raise StateProviderError(
                f"Cluster returned {resp.status_code} for {path}: {detail}",
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as e:
            raise StateProviderError(f"Cluster returned invalid JSON for {path}") from e

    def get_state(self) -> LifecycleState:
        status_doc = self._get("/_slm/status")
        policies_doc = self._get("/_slm/policy")
        state = parse_lifecycle_state(status_doc, policies_doc)
        logger.debug(
            "Fetched SLM state from %s: mode=%s policies=%d",
            self._base_url, state.operation_mode.value, state.policy_count,
        )
        return state


def provider_from_settings(cfg: Settings | None = None) -> StateProvider:
    """File provider when ``state_file`` is set, cluster provider otherwise."""
    cfg = cfg or settings
    if cfg.state_file:
        logger.info("Reading SLM state from file %s", cfg.state_file)
        return FileStateProvider(cfg.state_file)
    logger.info("Reading SLM state from cluster %s", cfg.cluster_url)
    return HttpStateProvider(
        base_url=cfg.cluster_url,
        api_key=cfg.cluster_api_key,
        timeout=cfg.cluster_timeout,
    )
