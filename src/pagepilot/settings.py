"""Pydantic-based settings loaded from YAML with env-var overrides."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from pagepilot.exceptions import ConfigurationError


_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class PageSettings(BaseSettings):
    """Page driver configuration with YAML + env var support.

    Env vars are prefixed with ``PAGEPILOT_``.
    Example: ``PAGEPILOT_AUTH_TIMEOUT=120``
    """

    model_config = {"env_prefix": "PAGEPILOT_"}

    # --- browser surface ---
    start_url: str = ""
    headless: bool = False
    slow_mo: int = 0  # ms between Playwright actions
    storage_state_path: str = ""

    # --- waits ---
    default_timeout: float = 60.0  # seconds
    poll_interval: float = 0.25  # seconds between predicate checks

    # --- authentication ---
    auth_timeout: float = 60.0
    auth_interval: float = 0.5
    auth_success_url_fragments: list[str] = Field(default_factory=list)
    auth_success_selectors: list[str] = Field(default_factory=list)
    auth_cookie_names: list[str] = Field(default_factory=list)

    # --- interception ---
    blocked_hosts: list[str] = Field(default_factory=list)
    capture_bodies: bool = False
    max_ledger_records: int = 0  # 0 = unbounded

    # --- export ---
    export_dir: str = ""
    export_format: str = "json"

    @field_validator("default_timeout", "poll_interval", "auth_timeout", "auth_interval")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("timeouts and intervals must be >= 0")
        return v

    @field_validator("max_ledger_records")
    @classmethod
    def _non_negative_cap(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_ledger_records must be >= 0 (0 = unbounded)")
        return v

    @field_validator("blocked_hosts")
    @classmethod
    def _normalise_hosts(cls, v: list[str]) -> list[str]:
        return [h.strip().lower() for h in v if h.strip()]

    @field_validator("export_format")
    @classmethod
    def _normalise_format(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("json", "csv"):
            raise ValueError("export_format must be 'json' or 'csv'")
        return v

    # ---- factory ----

    @classmethod
    def from_yaml(cls, path: str | Path | None = None) -> "PageSettings":
        """Load settings from a YAML file, then overlay env vars.

        Env vars (``PAGEPILOT_*``) take priority over YAML values.
        """
        if path is None:
            path = _PROJECT_ROOT / "pagepilot.yaml"
        path = Path(path)
        raw: dict[str, Any] = {}
        if path.exists():
            with open(path) as fh:
                raw = yaml.safe_load(fh) or {}
            if not isinstance(raw, dict):
                raise ConfigurationError(f"{path} must contain a mapping at the top level.")

        # Let env vars override YAML: remove YAML keys that have an env override
        prefix = "PAGEPILOT_"
        for key in list(raw.keys()):
            env_key = f"{prefix}{key.upper()}"
            if env_key in os.environ:
                del raw[key]

        try:
            return cls(**raw)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid settings in {path}: {exc}") from exc
