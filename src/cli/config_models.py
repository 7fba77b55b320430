"""Pydantic configuration models for the flight delay oracle."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _expand_env(value: Optional[str]) -> Optional[str]:
    """Expand a ``${VAR}`` placeholder, leaving plain values untouched."""
    if value and value.startswith("${") and value.endswith("}"):
        return os.getenv(value[2:-1], "")
    return value


class QuotaConfig(BaseModel):
    """Rolling 24h request ceilings."""

    max_per_requester_per_day: int = 10
    max_per_day: int = 100

    @field_validator("max_per_requester_per_day", "max_per_day")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Quota limits must be >= 1, got {v}")
        return v


class CapacityConfig(BaseModel):
    """Spendable output pool maintenance."""

    min_available: int = 100
    unit_cost: int = 600

    @field_validator("unit_cost")
    @classmethod
    def validate_cost(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"unit_cost must be >= 1, got {v}")
        return v


class PublicationConfig(BaseModel):
    """Data feed posting and retry behaviour."""

    retry_delay_seconds: float = 300.0
    retry_jitter_seconds: float = 3.0
    post_timestamp: bool = False
    sentinel_delay: int = 10000

    @field_validator("retry_delay_seconds", "retry_jitter_seconds")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"Retry timings must be >= 0, got {v}")
        return v


class FlightStatsConfig(BaseModel):
    """Flight-status provider access."""

    app_id: Optional[str] = None
    app_key: Optional[str] = None
    base_url: str = "https://api.flightstats.com/flex/flightstatus/rest/v2/json"
    browser_url: str = "http://www.flightstats.com/go/FlightStatus/flightStatusByFlight.do"
    timeout: float = 30.0
    max_age_days: int = 7
    taxi_in_minutes: int = 15


class EmailConfig(BaseModel):
    """SMTP settings for operator alerts."""

    enabled: bool = False
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    admin_email: Optional[str] = None
    from_email: Optional[str] = None
    timeout: float = 10.0


class PathsConfig(BaseModel):
    """File paths configuration."""

    db: Path = Path("~/.flight-oracle/oracle.db")
    log_file: Path = Path("~/.flight-oracle/oracle.log")

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.db = self.db.expanduser()
        self.log_file = self.log_file.expanduser()
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_mode: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class OracleConfig(BaseModel):
    """Main configuration model."""

    device_name: str = "Flight delays oracle"
    quota: QuotaConfig = Field(default_factory=QuotaConfig)
    capacity: CapacityConfig = Field(default_factory=CapacityConfig)
    publication: PublicationConfig = Field(default_factory=PublicationConfig)
    flightstats: FlightStatsConfig = Field(default_factory=FlightStatsConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def expand_env_vars(self):
        """Expand ${VAR} patterns in credentials."""
        self.flightstats.app_id = _expand_env(self.flightstats.app_id)
        self.flightstats.app_key = _expand_env(self.flightstats.app_key)
        self.email.password = _expand_env(self.email.password)
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "OracleConfig":
        """Create config from dict, converting string paths."""
        if "paths" in data:
            for key in ["db", "log_file"]:
                if key in data["paths"] and isinstance(data["paths"][key], str):
                    data["paths"][key] = Path(data["paths"][key])
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python")
