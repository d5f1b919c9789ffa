from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import ClassVar, final, override

from title_automation.domain.models.results import ScriptResult, ScriptStatus
from title_automation.domain.models.title_layout import TitleLayout
from title_automation.domain.protocols.label_script_port import LabelScriptPort


@final
class LabelScriptGateway(LabelScriptPort):
    SUCCESS_OUTPUT: ClassVar[str] = "Plist created"
    _ARCH_MARKERS: ClassVar[tuple[str, ...]] = ("$(arch)", "$(/usr/bin/arch)")

    def __init__(
        self,
        process_script_path: Path,
        layout: TitleLayout,
        logger: logging.Logger,
        timeout_seconds: int | None = 300,
        shell: str = "/bin/zsh",
        arch_bin: str = "/usr/bin/arch",
    ) -> None:
        self._process_script_path = process_script_path
        self._layout = layout
        self._logger = logger
        if timeout_seconds is None:
            self._timeout_seconds: int | None = None
        else:
            self._timeout_seconds = max(1, int(timeout_seconds))
        self._shell = shell
        self._arch_bin = arch_bin

    @classmethod
    def needs_x86_pass(cls, label_script: Path) -> bool:
        try:
            contents = label_script.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return False
        return any(marker in contents for marker in cls._ARCH_MARKERS)

    def _execute(self, command: list[str], folder_name: str) -> ScriptResult:
        try:
            completed = subprocess.run(
                command,
                check=False,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self._timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            self._logger.error(
                "Label processing for %s timed out after %ss", folder_name, self._timeout_seconds
            )
            return ScriptResult(ScriptStatus.TIMED_OUT, None, "")
        except OSError as exc:
            self._logger.error("Failed to execute %s for %s: %s", command[0], folder_name, exc)
            return ScriptResult(ScriptStatus.FAILED, None, str(exc))

        output = str(completed.stdout or "").strip()
        if completed.returncode != 0:
            self._logger.error(
                "Label processing for %s failed with exit code %d: %s",
                folder_name,
                completed.returncode,
                output,
            )
            return ScriptResult(ScriptStatus.FAILED, completed.returncode, output)
        if output != self.SUCCESS_OUTPUT:
            self._logger.error("Plist update failed for %s: %s", folder_name, output)
            return ScriptResult(ScriptStatus.FAILED, completed.returncode, output)
        return ScriptResult(ScriptStatus.SUCCEEDED, completed.returncode, output)

    @override
    def run(self, folder_name: str) -> ScriptResult:
        parts = TitleLayout.split_folder_name(folder_name)
        if parts is None:
            self._logger.error("Invalid managed title folder name: %s", folder_name)
            return ScriptResult(ScriptStatus.FAILED, None, f"invalid folder name: {folder_name}")
        label, tracking_id = parts

        label_script = self._layout.title_dir(label, tracking_id) / f"{label}.sh"
        for required in (self._process_script_path, label_script):
            if not required.is_file():
                self._logger.error("Script not found: %s", required)
                return ScriptResult(ScriptStatus.NOT_FOUND, None, f"not found: {required}")

        base_command = [self._shell, str(self._process_script_path), str(label_script)]
        result = self._execute(base_command, folder_name)
        if not result.succeeded or not self.needs_x86_pass(label_script):
            return result

        self._logger.info("Re-running label processing for %s under x86_64", folder_name)
        return self._execute([self._arch_bin, "-x86_64", *base_command], folder_name)
