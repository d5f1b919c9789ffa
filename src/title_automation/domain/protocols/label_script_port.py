from __future__ import annotations

from typing import Protocol

from title_automation.domain.models.results import ScriptResult


class LabelScriptPort(Protocol):
    def run(self, folder_name: str) -> ScriptResult: ...
