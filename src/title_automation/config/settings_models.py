from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class UserSettings(BaseModel):
    tenant_id: str | None = Field(default=None)
    application_id: str | None = Field(default=None)
    client_secret: str | None = Field(default=None, repr=False)
    log_level: str | None = Field(default=None)
    app_versions_to_keep: int | None = Field(default=None, ge=1)
    upload_poll_attempts: int | None = Field(default=None, ge=1)
    upload_poll_interval_seconds: float | None = Field(default=None, ge=0)
    graph_timeout_seconds: int | None = Field(default=None, ge=1)
    label_script_timeout_seconds: int | None = Field(default=None, ge=1)
    removal_workers: int | None = Field(default=None, ge=1)
    removal_queue_interval_seconds: int | None = Field(default=None, ge=1)
    removal_queue_cron_expression: str | None = Field(default=None)

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = str(value or "").strip().lower()
        if not normalized:
            return None
        if normalized not in {"debug", "info", "warn", "warning", "error"}:
            raise ValueError("LOG_LEVEL must be one of: debug, info, warn, error")
        return "warning" if normalized == "warn" else normalized

    @field_validator("removal_queue_cron_expression")
    @classmethod
    def _validate_cron_expression(cls, value: str | None) -> str | None:
        normalized = " ".join(str(value or "").split())
        if not normalized:
            return None
        if len(normalized.split(" ")) != 5:
            raise ValueError("REMOVAL_QUEUE_CRON_EXPRESSION must have 5 fields")
        return normalized
