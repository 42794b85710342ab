from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Logging
    log_level: str = "INFO"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # State source: a local YAML/JSON document wins over a cluster URL
    state_file: str = ""
    cluster_url: str = "http://127.0.0.1:9200"
    cluster_api_key: str = ""  # sent as "Authorization: ApiKey <key>"
    cluster_timeout: float = 10.0  # seconds

    # SLM indicator thresholds (last failure minus last success, in ms)
    slm_red_threshold_ms: int = 7_889_400_000  # ~3 months
    slm_yellow_threshold_ms: int = 2_400_000  # 40 minutes
    slm_stop_at_first_breach: bool = False  # report only the first failing policy


settings = Settings()
