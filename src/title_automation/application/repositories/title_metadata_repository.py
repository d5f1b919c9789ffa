from __future__ import annotations

import json
import plistlib
from pathlib import Path
from typing import ClassVar, cast, final, override

from title_automation.domain.models.errors import TitleMetadataError
from title_automation.domain.models.processed_app_results import (
    DeploymentArch,
    DeploymentType,
    ProcessedAppResults,
)
from title_automation.domain.models.title_layout import TitleLayout
from title_automation.domain.protocols.title_metadata_port import TitleMetadataPort
from title_automation.domain.services.dual_arch import is_dual_arch


@final
class TitleMetadataRepository(TitleMetadataPort):
    METADATA_FILE_NAME: ClassVar[str] = "metadata.json"

    def __init__(self, layout: TitleLayout) -> None:
        self._layout = layout

    @staticmethod
    def _read_json(path: Path) -> dict[str, object]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise TitleMetadataError(f"Missing metadata file: {path}") from exc
        except (OSError, ValueError) as exc:
            raise TitleMetadataError(f"Failed to load metadata {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise TitleMetadataError(f"Metadata must be a JSON object: {path}")
        return cast(dict[str, object], data)

    @staticmethod
    def _read_plist(path: Path) -> dict[str, object]:
        try:
            with path.open("rb") as handle:
                data = plistlib.load(handle)
        except FileNotFoundError as exc:
            raise TitleMetadataError(f"Missing plist file: {path}") from exc
        except (OSError, ValueError, plistlib.InvalidFileException) as exc:
            raise TitleMetadataError(f"Failed to parse plist {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise TitleMetadataError(f"Plist root must be a dictionary: {path}")
        return cast(dict[str, object], data)

    @staticmethod
    def _required_str(data: dict[str, object], key: str, source: Path) -> str:
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            raise TitleMetadataError(f"Critical key {key} is missing in {source}")
        return value.strip()

    @staticmethod
    def _optional_str(data: dict[str, object], key: str) -> str:
        value = data.get(key)
        return value.strip() if isinstance(value, str) else ""

    @staticmethod
    def _required_tag(data: dict[str, object], key: str, source: Path) -> int:
        raw = data.get(key)
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise TitleMetadataError(f"Critical key {key} is missing in {source}")
        return raw

    @override
    def load(self, folder_name: str) -> ProcessedAppResults:
        parts = TitleLayout.split_folder_name(folder_name)
        if parts is None:
            raise TitleMetadataError(f"Invalid folder format: {folder_name}")
        label, tracking_id = parts

        metadata_path = self._layout.title_dir(label, tracking_id) / self.METADATA_FILE_NAME
        metadata = self._read_json(metadata_path)
        bundle_id = self._required_str(metadata, "CFBundleIdentifier", metadata_path)
        arch_tag = self._required_tag(metadata, "deployAsArchTag", metadata_path)
        type_tag = self._required_tag(metadata, "deploymentTypeTag", metadata_path)
        try:
            deployment_arch = DeploymentArch(arch_tag)
            deployment_type = DeploymentType(type_tag)
        except ValueError as exc:
            raise TitleMetadataError(f"Unsupported deployment tag in {metadata_path}: {exc}") from exc

        dual_arch = is_dual_arch(label, tracking_id, self._layout)
        x86_path = self._layout.x86_descriptor_path(label, tracking_id)
        if dual_arch and deployment_arch is DeploymentArch.X86_64:
            plist_path = x86_path
        else:
            plist_path = self._layout.primary_descriptor_path(label, tracking_id)
        descriptor = self._read_plist(plist_path)

        download_url_x86 = ""
        if dual_arch and deployment_arch is DeploymentArch.UNIVERSAL:
            download_url_x86 = self._optional_str(self._read_plist(x86_path), "downloadURL")

        return ProcessedAppResults(
            label_name=label,
            tracking_id=tracking_id,
            display_name=self._required_str(descriptor, "name", plist_path),
            version_expected=self._required_str(descriptor, "appNewVersion", plist_path),
            version_actual="",
            deployment_type=deployment_type,
            deployment_arch=deployment_arch,
            bundle_id_expected=bundle_id,
            download_url=self._required_str(descriptor, "downloadURL", plist_path),
            download_url_x86=download_url_x86,
            label_type=self._optional_str(descriptor, "type"),
            team_id=self._optional_str(descriptor, "expectedTeamID"),
            is_dual_arch=dual_arch,
        )
