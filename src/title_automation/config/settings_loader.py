from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar, final

from title_automation.config.settings_models import UserSettings
from title_automation.domain.models.app_config import AppConfig, RuntimePaths


@final
class SettingsLoader:
    KEY_MAP: ClassVar[dict[str, str]] = {
        "TENANT_ID": "tenant_id",
        "APPLICATION_ID": "application_id",
        "CLIENT_SECRET": "client_secret",
        "LOG_LEVEL": "log_level",
        "APP_VERSIONS_TO_KEEP": "app_versions_to_keep",
        "UPLOAD_POLL_ATTEMPTS": "upload_poll_attempts",
        "UPLOAD_POLL_INTERVAL_SECONDS": "upload_poll_interval_seconds",
        "GRAPH_TIMEOUT_SECONDS": "graph_timeout_seconds",
        "LABEL_SCRIPT_TIMEOUT_SECONDS": "label_script_timeout_seconds",
        "REMOVAL_WORKERS": "removal_workers",
        "REMOVAL_QUEUE_INTERVAL_SECONDS": "removal_queue_interval_seconds",
        "REMOVAL_QUEUE_CRON_EXPRESSION": "removal_queue_cron_expression",
    }
    _INT_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {
            "app_versions_to_keep",
            "upload_poll_attempts",
            "graph_timeout_seconds",
            "label_script_timeout_seconds",
            "removal_workers",
            "removal_queue_interval_seconds",
        }
    )
    _FLOAT_FIELDS: ClassVar[frozenset[str]] = frozenset({"upload_poll_interval_seconds"})
    SECRET_ENV: ClassVar[str] = "TITLE_AUTOMATION_CLIENT_SECRET"

    @staticmethod
    def parse_key_value_file(path: Path) -> dict[str, str]:
        data: dict[str, str] = {}
        if not path.exists():
            return data

        for raw_line in path.read_text("utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[7:].strip()
            if "=" not in line:
                continue
            key, value = line.split("=", 1)
            data[key.strip()] = value.strip().strip('"').strip("'")
        return data

    @classmethod
    def coerce(cls, target: str, value: str) -> object:
        text = str(value or "").strip()
        if not text:
            return None
        if target in cls._INT_FIELDS:
            try:
                return int(text)
            except ValueError:
                return None
        if target in cls._FLOAT_FIELDS:
            try:
                return float(text)
            except ValueError:
                return None
        return text

    @classmethod
    def to_user_settings(cls, raw: dict[str, str]) -> UserSettings:
        mapped: dict[str, object] = {}
        for key, value in raw.items():
            target = cls.KEY_MAP.get(key)
            if not target:
                continue
            mapped[target] = cls.coerce(target, value)

        secret = str(os.getenv(cls.SECRET_ENV) or "").strip()
        if secret:
            mapped["client_secret"] = secret
        return UserSettings.model_validate(mapped)

    @staticmethod
    def _build_paths(app_root: Path, settings_path: Path) -> RuntimePaths:
        data_dir = app_root / "data"
        internal_dir = data_dir / "internal"
        queue_dir = data_dir / "queue"
        return RuntimePaths(
            app_root=app_root,
            data_dir=data_dir,
            internal_dir=internal_dir,
            managed_titles_dir=data_dir / "managed_titles",
            cache_dir=data_dir / "cache",
            queue_dir=queue_dir,
            removal_queue_dir=queue_dir / "removals",
            locks_dir=internal_dir / "locks",
            logs_dir=internal_dir / "logs",
            settings_path=settings_path,
            process_label_script_path=app_root / "bin" / "process_label.sh",
        )

    @classmethod
    def load(cls, settings_path: Path | None = None, app_root: Path | None = None) -> AppConfig:
        root = app_root or Path.cwd()
        resolved_settings = settings_path or root / "configs" / "settings.ini"
        raw = cls.parse_key_value_file(resolved_settings)
        user = cls.to_user_settings(raw)
        paths = cls._build_paths(root, resolved_settings)
        return AppConfig(user=user, paths=paths)
