"""
acl_dynamodb.config — Backend configuration.

Defaults match the historical backend: no prefix, one table per bucket,
5 RCU/WCU for lazily created tables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_CAPACITY_UNITS = 5
DEFAULT_MAX_READ_RETRIES = 10
DEFAULT_RETRY_BASE_DELAY = 1.0

_PREFIX_ENV = "ACL_DYNAMODB_PREFIX"
_USE_SINGLE_ENV = "ACL_DYNAMODB_USE_SINGLE"
_READ_CAPACITY_ENV = "ACL_DYNAMODB_READ_CAPACITY"
_WRITE_CAPACITY_ENV = "ACL_DYNAMODB_WRITE_CAPACITY"
_MAX_READ_RETRIES_ENV = "ACL_DYNAMODB_MAX_READ_RETRIES"
_RETRY_BASE_DELAY_ENV = "ACL_DYNAMODB_RETRY_BASE_DELAY"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class BackendConfig:
    """
    prefix:              Prepended to every physical table name.
    use_single:          Store all buckets in one shared table keyed by (key, bucket).
    max_read_retries:    Retry ceiling for unprocessed batch items; None retries forever.
    retry_base_delay:    Seconds multiplied by retry_count**2 before each retry.
    wait_for_tables:     Block until a lazily created table is ACTIVE.
    """

    prefix: str = ""
    use_single: bool = False
    read_capacity_units: int = DEFAULT_CAPACITY_UNITS
    write_capacity_units: int = DEFAULT_CAPACITY_UNITS
    max_read_retries: int | None = DEFAULT_MAX_READ_RETRIES
    retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY
    wait_for_tables: bool = True

    def __post_init__(self) -> None:
        if self.read_capacity_units < 1 or self.write_capacity_units < 1:
            raise ValueError("capacity units must be >= 1")
        if self.max_read_retries is not None and self.max_read_retries < 0:
            raise ValueError("max_read_retries must be >= 0 or None")
        if self.retry_base_delay < 0:
            raise ValueError("retry_base_delay must be >= 0")

    @classmethod
    def from_env(cls) -> BackendConfig:
        return cls(
            prefix=os.environ.get(_PREFIX_ENV, ""),
            use_single=_env_bool(_USE_SINGLE_ENV, default=False),
            read_capacity_units=_env_int(_READ_CAPACITY_ENV, DEFAULT_CAPACITY_UNITS),
            write_capacity_units=_env_int(_WRITE_CAPACITY_ENV, DEFAULT_CAPACITY_UNITS),
            max_read_retries=_env_retries(_MAX_READ_RETRIES_ENV, DEFAULT_MAX_READ_RETRIES),
            retry_base_delay=_env_float(_RETRY_BASE_DELAY_ENV, DEFAULT_RETRY_BASE_DELAY),
        )


def _env_bool(name: str, *, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_retries(name: str, default: int) -> int | None:
    raw = os.environ.get(name, "").strip()
    if raw.lower() == "none":
        return None
    return _env_int(name, default)
