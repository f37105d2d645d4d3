"""Configuration schema models using Pydantic."""

from datetime import timezone, tzinfo
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range

MIN_TICK_SECONDS = 10
MAX_TICK_SECONDS = 3600


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class WorkerConfig(BaseModel):
    """Settings for the periodic schedule worker."""

    tick_interval: str = Field("1m", description="How often the worker looks for due schedules")
    timezone: str = Field(
        "UTC", description="IANA timezone used for schedule times and stored timestamps"
    )
    run_on_startup: bool = Field(
        True, description="Run one pass immediately instead of waiting a full interval"
    )

    # Computed from tick_interval
    tick_interval_seconds: Optional[int] = None

    @field_validator("tick_interval")
    @classmethod
    def validate_tick_interval(cls, v: str) -> str:
        try:
            validate_duration_range(parse_duration(v), MIN_TICK_SECONDS, MAX_TICK_SECONDS)
        except DurationParseError as e:
            raise ValueError(str(e)) from e
        return v.strip()

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        name = v.strip()
        if name.upper() == "UTC":
            return "UTC"
        try:
            ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: '{v}'") from e
        return name

    @model_validator(mode="after")
    def compute_tick_seconds(self):
        self.tick_interval_seconds = parse_duration(self.tick_interval)
        return self

    def zone(self) -> tzinfo:
        """Return the configured timezone as a tzinfo instance."""
        if self.timezone == "UTC":
            return timezone.utc
        return ZoneInfo(self.timezone)


class EmailConfig(BaseModel):
    """Email channel settings."""

    use_tls: bool = Field(True, description="Upgrade plain SMTP connections with STARTTLS")
    timeout_seconds: int = Field(
        30, ge=1, le=300, description="Upper bound for one SMTP session, in seconds"
    )
    verify_on_startup: bool = Field(
        True, description="Open one SMTP session at boot before starting the worker"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(LogFormat.KEY_VALUE, description="Log output format")

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the notifyhub worker."""

    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
