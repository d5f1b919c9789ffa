from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar


@dataclass(frozen=True, slots=True)
class TitleLayout:
    """On-disk layout shared by the removal and upload workflows.

    Managed titles live in ``<managed_titles_dir>/<label>_<tracking_id>/`` and
    downloaded artifacts in ``<cache_dir>/<label>/<version>/``.
    """

    UPLOAD_MARKER_NAME: ClassVar[str] = ".uploaded"

    managed_titles_dir: Path
    cache_dir: Path

    @staticmethod
    def folder_name(label: str, tracking_id: str) -> str:
        return f"{label}_{tracking_id}"

    @staticmethod
    def split_folder_name(folder_name: str) -> tuple[str, str] | None:
        parts = str(folder_name or "").split("_")
        if len(parts) != 2:
            return None
        return parts[0], parts[1]

    def title_dir(self, label: str, tracking_id: str) -> Path:
        return self.managed_titles_dir / self.folder_name(label, tracking_id)

    def upload_marker_path(self, label: str, tracking_id: str) -> Path:
        return self.title_dir(label, tracking_id) / self.UPLOAD_MARKER_NAME

    def x86_descriptor_path(self, label: str, tracking_id: str) -> Path:
        return self.title_dir(label, tracking_id) / f"{label}_i386.plist"

    def primary_descriptor_path(self, label: str, tracking_id: str) -> Path:
        return self.title_dir(label, tracking_id) / f"{label}.plist"

    def version_cache_dir(self, label: str, version: str) -> Path:
        return self.cache_dir / label / version

    def tmp_dir(self, label: str) -> Path:
        return self.cache_dir / label / "tmp"
