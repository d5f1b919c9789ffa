from __future__ import annotations

from typing import Protocol

from title_automation.domain.models.processed_app_results import ProcessedAppResults


class TitleMetadataPort(Protocol):
    def load(self, folder_name: str) -> ProcessedAppResults: ...
