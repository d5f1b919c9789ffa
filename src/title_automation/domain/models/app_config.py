from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from title_automation.domain.models.title_layout import TitleLayout

if TYPE_CHECKING:
    from title_automation.config.settings_models import UserSettings


@dataclass(frozen=True)
class RuntimePaths:
    app_root: Path
    data_dir: Path
    internal_dir: Path
    managed_titles_dir: Path
    cache_dir: Path
    queue_dir: Path
    removal_queue_dir: Path
    locks_dir: Path
    logs_dir: Path
    settings_path: Path
    process_label_script_path: Path

    @property
    def layout(self) -> TitleLayout:
        return TitleLayout(
            managed_titles_dir=self.managed_titles_dir,
            cache_dir=self.cache_dir,
        )


@dataclass(frozen=True)
class AppConfig:
    user: UserSettings
    paths: RuntimePaths
    upload_poll_attempts: int = 12
    upload_poll_interval_seconds: float = 3.0
    app_versions_to_keep: int = 2
    removal_queue_interval_seconds: int = 30

    @property
    def poll_attempts(self) -> int:
        value = self.user.upload_poll_attempts
        return self.upload_poll_attempts if value is None else value

    @property
    def poll_interval_seconds(self) -> float:
        value = self.user.upload_poll_interval_seconds
        return self.upload_poll_interval_seconds if value is None else float(value)

    @property
    def versions_to_keep(self) -> int:
        value = self.user.app_versions_to_keep
        return self.app_versions_to_keep if value is None else value

    @property
    def queue_interval_seconds(self) -> int:
        value = self.user.removal_queue_interval_seconds
        return self.removal_queue_interval_seconds if value is None else value
