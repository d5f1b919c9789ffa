from __future__ import annotations

from pathlib import Path
from typing import final

from filelock import FileLock

from title_automation.config.settings_loader import SettingsLoader
from title_automation.config.settings_models import UserSettings


@final
class SettingsStore:
    """Typed read/write access to ``settings.ini``.

    ``set`` validates against ``UserSettings`` before accepting a value.
    ``save`` rewrites only the changed keys, keeping comments and unknown
    lines in place, under an exclusive lock next to the file.
    """

    def __init__(self, settings_path: Path, lock_timeout_seconds: float = 5.0) -> None:
        self._settings_path = settings_path
        self._lock = FileLock(str(settings_path.with_name(f"{settings_path.name}.lock")))
        self._lock_timeout_seconds = float(lock_timeout_seconds)
        self._values = SettingsLoader.parse_key_value_file(settings_path)
        self._dirty: set[str] = set()

    @staticmethod
    def _field_for(key: str) -> str:
        normalized = str(key or "").strip().upper()
        target = SettingsLoader.KEY_MAP.get(normalized)
        if target is None:
            raise KeyError(f"Unknown setting: {key}")
        return target

    def snapshot(self) -> UserSettings:
        return SettingsLoader.to_user_settings(self._values)

    def get(self, key: str) -> object:
        return getattr(self.snapshot(), self._field_for(key))

    def set(self, key: str, value: object) -> None:
        target = self._field_for(key)
        name = str(key).strip().upper()
        text = "" if value is None else str(value).strip()
        if text and SettingsLoader.coerce(target, text) is None:
            raise ValueError(f"Invalid value for {name}: {text}")

        candidate = dict(self._values)
        candidate[name] = text
        _ = SettingsLoader.to_user_settings(candidate)
        self._values = candidate
        self._dirty.add(name)

    def _render(self) -> str:
        pending = set(self._dirty)
        lines: list[str] = []
        if self._settings_path.exists():
            for raw_line in self._settings_path.read_text("utf-8").splitlines():
                stripped = raw_line.strip()
                if stripped.startswith("export "):
                    stripped = stripped[7:].strip()
                key = stripped.split("=", 1)[0].strip() if "=" in stripped else ""
                if key in pending and not stripped.startswith("#"):
                    lines.append(f"{key}={self._values[key]}")
                    pending.discard(key)
                    continue
                lines.append(raw_line)
        for key in sorted(pending):
            lines.append(f"{key}={self._values[key]}")
        return "\n".join(lines) + "\n"

    def save(self) -> None:
        if not self._dirty:
            return
        self._settings_path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock.acquire(timeout=self._lock_timeout_seconds):
            _ = self._settings_path.write_text(self._render(), encoding="utf-8")
        self._dirty.clear()
