"""Environment-driven configuration."""

import logging
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from telemetry_alerts.core.dispatcher import AlertChannelSettings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class AlertingSettings(BaseSettings):
    """Settings read from environment variables (case-insensitive) or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="app", description="Application name")
    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Deployment environment"
    )

    # Alert destinations
    alert_email_from: str = Field(..., description="Sender address for alerts")
    alert_email_recipients: str = Field(
        default="", description="Alert recipients (comma-separated)"
    )
    alert_sns_topic_arn: str = Field(..., description="Topic for CRITICAL alerts")
    alert_slack_webhook_url: str | None = Field(
        default=None, description="Chat webhook URL"
    )

    # Collection and evaluation
    metric_batch_interval: float = Field(default=60.0, gt=0)
    metric_max_batch_size: int = Field(default=20, ge=1)
    evaluation_interval: float = Field(
        default=60.0, gt=0, description="Seconds between rule evaluations"
    )
    evaluation_concurrency: int | None = Field(
        default=None, ge=1, description="Cap on concurrent rule evaluations"
    )

    # Channels
    webhook_timeout: float = Field(default=10.0, gt=0)
    smtp_host: str | None = None
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_starttls: bool = True

    # Storage and logging
    metrics_db_path: str | None = Field(
        default=None, description="SQLite file; in-memory backend when unset"
    )
    log_level: str = Field(default="INFO", description="Log level")

    @field_validator("alert_slack_webhook_url", "smtp_host", "metrics_db_path")
    @classmethod
    def _blank_is_none(cls, v: str | None) -> str | None:
        return v or None

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {v}")
        return level

    @property
    def email_recipients(self) -> tuple[str, ...]:
        """Alert recipients as a tuple, empty entries dropped."""
        return tuple(
            item.strip()
            for item in self.alert_email_recipients.split(",")
            if item.strip()
        )

    def channel_settings(self) -> AlertChannelSettings:
        return AlertChannelSettings(
            email_source=self.alert_email_from,
            topic_arn=self.alert_sns_topic_arn,
            email_destinations=self.email_recipients,
            webhook_url=self.alert_slack_webhook_url,
        )


def configure_logging(level: str | int = "INFO") -> None:
    """Install a stream handler on the root logger if it has none."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
