"""Recorder configuration using Pydantic Settings.

Every field can be set from a ``PERFKEEPER_``-prefixed environment variable,
e.g. ``PERFKEEPER_SCAN_COUNT=250``. Retention is given in seconds.
"""

from datetime import timedelta
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from perfkeeper.core.exceptions import InvalidConfiguration

ENV_PREFIX = "PERFKEEPER_"

MIN_RETENTION = timedelta(seconds=1)


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        field = ".".join(str(p) for p in item["loc"]) or "config"
        env_name = f"{ENV_PREFIX}{field.upper()}"
        parts.append(f"{field} ({env_name}): {item['msg']}")
    return "; ".join(parts)


class RecorderConfig(BaseSettings):
    """Settings consumed by the recorder and the keyspace scanner.

    Attributes:
        retention: How long records live in the store; also bounds report scans.
        use_scan: Enumerate keys with cursor SCAN instead of a blocking KEYS.
        scan_count: Fixed SCAN batch size, used when auto-tuning is off.
            Checked when a scan runs, not here.
        scan_count_auto_tune: Pick the SCAN batch size from the pattern shape.
        max_scan_iterations: Upper bound on SCAN round trips for one pattern.
        enabled: When False, records are not written.
        redis_url: Connection URL for the Redis store adapter.

    Raises:
        InvalidConfiguration: If a value cannot be parsed or is out of range.
    """

    retention: timedelta = Field(default=timedelta(hours=4))
    use_scan: bool = Field(default=True)
    scan_count: int = Field(default=100)
    scan_count_auto_tune: bool = Field(default=True)
    max_scan_iterations: int = Field(default=100_000, ge=1)
    enabled: bool = Field(default=True)
    redis_url: str = Field(default="redis://localhost:6379/0")

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        frozen=True,
        extra="ignore",
    )

    def __init__(self, **values: Any) -> None:
        try:
            super().__init__(**values)
        except ValidationError as e:
            raise InvalidConfiguration(_describe(e)) from e

    @field_validator("retention", mode="before")
    @classmethod
    def parse_retention_seconds(cls, v: Any) -> Any:
        """Accept a plain number of seconds, as set from the environment."""
        if isinstance(v, str) and v.strip().isdigit():
            return timedelta(seconds=int(v))
        if isinstance(v, int | float) and not isinstance(v, bool):
            return timedelta(seconds=v)
        return v

    @field_validator("retention")
    @classmethod
    def validate_retention(cls, v: timedelta) -> timedelta:
        """Every record must expire, so retention is at least one second."""
        if v < MIN_RETENTION:
            raise ValueError(f"retention must be at least 1 second, got {v}")
        return v
