"""Service configuration from the environment (and a .env file at the repo root).

    DATA_DIR               where JSON records are stored (default ./data)
    HOST_URL               chat host base URL (default http://localhost:8000)
    HOST_API_KEY           bearer token for the host, if any
    WORLDS_DIR             read lorebooks from this directory instead of the host
    SAVE_DEBOUNCE_SECONDS  settings write debounce window (default 1.0)
    HOST_TIMEOUT_SECONDS   host HTTP timeout (default 10)
    LOG_LEVEL              root log level (default INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent.parent
DEFAULT_DATA_DIR = ROOT / "data"


@dataclass(frozen=True)
class AppConfig:
    data_dir: Path = DEFAULT_DATA_DIR
    host_url: str = "http://localhost:8000"
    host_api_key: str = ""
    worlds_dir: Path | None = None
    save_debounce_seconds: float = 1.0
    host_timeout_seconds: float = 10.0
    log_level: str = "INFO"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def load_config() -> AppConfig:
    load_dotenv(ROOT / ".env")
    worlds = os.getenv("WORLDS_DIR", "")
    return AppConfig(
        data_dir=Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR))),
        host_url=os.getenv("HOST_URL", AppConfig.host_url),
        host_api_key=os.getenv("HOST_API_KEY", ""),
        worlds_dir=Path(worlds) if worlds else None,
        save_debounce_seconds=_float_env("SAVE_DEBOUNCE_SECONDS", AppConfig.save_debounce_seconds),
        host_timeout_seconds=_float_env("HOST_TIMEOUT_SECONDS", AppConfig.host_timeout_seconds),
        log_level=os.getenv("LOG_LEVEL", AppConfig.log_level).upper(),
    )
