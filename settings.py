from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_CAPACITY_ENV = "TELEMETRY_HISTORY_CAPACITY"
_DEFAULT_LIMIT_ENV = "TELEMETRY_HISTORY_DEFAULT_LIMIT"
_DEVICE_ID_ENV = "TELEMETRY_DEFAULT_DEVICE_ID"
_MISSING_POLICY_ENV = "TELEMETRY_MISSING_FIELD_POLICY"
_TABLE_NAME_ENV = "TELEMETRY_TABLE_NAME"
_TABLE_PATH_ENV = "TELEMETRY_PERSISTENCE_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_MISSING_POLICIES = ("null", "zero")


@dataclass(frozen=True)
class Settings:
    history_capacity: int
    history_default_limit: int
    default_device_id: str
    missing_field_policy: str
    table_name: str
    table_persistence_path: Optional[str]
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_missing_policy(default: str) -> str:
    candidate = _read_str_env(_MISSING_POLICY_ENV, default).lower()
    return candidate if candidate in _MISSING_POLICIES else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        history_capacity=_read_positive_int(_CAPACITY_ENV, 200),
        history_default_limit=_read_positive_int(_DEFAULT_LIMIT_ENV, 100),
        default_device_id=_read_str_env(_DEVICE_ID_ENV, "demo"),
        missing_field_policy=_read_missing_policy("null"),
        table_name=_read_str_env(_TABLE_NAME_ENV, "glove_readings"),
        table_persistence_path=_read_optional_env(_TABLE_PATH_ENV, None),
        log_level=_read_log_level("INFO"),
    )
