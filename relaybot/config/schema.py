"""Configuration schema using Pydantic."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from relaybot.core.registry import HandlerErrorPolicy


class AgentConfig(BaseModel):
    """Stream consumer behaviour."""

    model_config = ConfigDict(extra="ignore")

    auto_sync: bool = True  # sync conversations before opening the stream
    handler_error_policy: HandlerErrorPolicy = HandlerErrorPolicy.ISOLATE


class ReconnectConfig(BaseModel):
    """Stream supervisor backoff settings."""

    model_config = ConfigDict(extra="ignore")

    enabled: bool = True
    max_attempts: int = Field(default=6, ge=0)  # 0 means unlimited retries
    initial_ms: int = Field(default=1000, ge=0)
    max_ms: int = Field(default=30000, ge=0)
    factor: float = Field(default=2.0, ge=1.0)
    jitter: float = Field(default=0.25, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _validate_bounds(self) -> "ReconnectConfig":
        if self.max_ms < self.initial_ms:
            raise ValueError("reconnect.maxMs must be >= reconnect.initialMs")
        return self


class TelemetryConfig(BaseModel):
    """Metrics backend selection."""

    model_config = ConfigDict(extra="ignore")

    backend: Literal["none", "memory", "prometheus"] = "none"
    host: str = "127.0.0.1"
    port: int = 9464


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    level: Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"] = "INFO"


class Config(BaseSettings):
    """Root configuration for relaybot."""

    model_config = SettingsConfigDict(
        extra="ignore", populate_by_name=True, env_prefix="RELAYBOT_", env_nested_delimiter="__"
    )

    config_version: int = 1
    agent: AgentConfig = Field(default_factory=AgentConfig)
    reconnect: ReconnectConfig = Field(default_factory=ReconnectConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
