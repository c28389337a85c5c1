"""Engine settings resolved from TODO_ENGINE_* environment variables.

CLI flags override what is resolved here; nothing in this module touches
the filesystem.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

ENV_PREFIX = "TODO_ENGINE"

DEFAULT_DATA_DIR = ".todo"
DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024   # what browsers give localStorage
DEFAULT_CHECK_INTERVAL = 60.0
DEFAULT_LOG_LEVEL = "INFO"


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _get(env: Mapping[str, str], suffix: str) -> Optional[str]:
    raw = env.get(_k(suffix))
    if raw is None or raw.strip() == "":
        return None
    return raw.strip()


def _int(env: Mapping[str, str], suffix: str, default: int) -> int:
    raw = _get(env, suffix)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float(env: Mapping[str, str], suffix: str, default: float) -> float:
    raw = _get(env, suffix)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class EngineConfig:
    data_dir: Path = Path(DEFAULT_DATA_DIR)
    quota_bytes: Optional[int] = DEFAULT_QUOTA_BYTES   # None: unlimited
    check_interval: float = DEFAULT_CHECK_INTERVAL
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        env = os.environ if env is None else env

        data_dir = _get(env, "DATA_DIR")
        quota = _int(env, "QUOTA_BYTES", DEFAULT_QUOTA_BYTES)
        level = (_get(env, "LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()

        return cls(
            data_dir=Path(data_dir).expanduser() if data_dir else Path(DEFAULT_DATA_DIR),
            quota_bytes=quota if quota > 0 else None,
            check_interval=max(1.0, _float(env, "CHECK_INTERVAL", DEFAULT_CHECK_INTERVAL)),
            log_level=level,
        )
