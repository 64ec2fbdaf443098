from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_ENDPOINT_URL = "https://api.blocktap.io/graphql"
DEFAULT_TIMEOUT_S = 30.0


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_config_file(path: str | Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"config file {path} must contain a mapping")
    return cfg


@dataclass(frozen=True)
class ClientConfig:
    api_key: Optional[str] = None
    endpoint_url: str = DEFAULT_ENDPOINT_URL
    timeout_s: float = DEFAULT_TIMEOUT_S

    @property
    def authenticated(self) -> bool:
        return bool(self.api_key)

    def __repr__(self) -> str:
        key = "***" if self.api_key else None
        return (
            f"ClientConfig(api_key={key!r}, endpoint_url={self.endpoint_url!r}, "
            f"timeout_s={self.timeout_s!r})"
        )

    @classmethod
    def from_env(
        cls,
        api_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
    ) -> "ClientConfig":
        """Resolve settings: explicit args, then env vars, then BLOCKTAP_CONFIG yaml, then defaults."""
        file_cfg: Dict[str, Any] = {}
        config_path = _env_str("BLOCKTAP_CONFIG")
        if config_path:
            file_cfg = load_config_file(config_path)

        key = api_key or _env_str("BLOCKTAP_KEY") or file_cfg.get("api_key") or None
        url = endpoint_url or _env_str("BLOCKTAP_URL") or file_cfg.get("endpoint_url") or DEFAULT_ENDPOINT_URL
        if timeout_s is None:
            timeout_s = _env_float("BLOCKTAP_TIMEOUT_S", None)
        if timeout_s is None:
            timeout_s = float(file_cfg.get("timeout_s", DEFAULT_TIMEOUT_S))
        return cls(api_key=key, endpoint_url=str(url), timeout_s=float(timeout_s))
