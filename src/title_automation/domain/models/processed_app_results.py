from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import IntEnum


class DeploymentType(IntEnum):
    DMG = 0
    PKG = 1
    LOB = 2

    @property
    def file_suffix(self) -> str:
        return "dmg" if self is DeploymentType.DMG else "pkg"


class DeploymentArch(IntEnum):
    ARM64 = 0
    X86_64 = 1
    UNIVERSAL = 2

    @property
    def tag(self) -> str:
        return {
            DeploymentArch.ARM64: "arm64",
            DeploymentArch.X86_64: "x86_64",
            DeploymentArch.UNIVERSAL: "universal",
        }[self]


@dataclass(frozen=True, slots=True)
class ProcessedAppResults:
    label_name: str
    tracking_id: str
    display_name: str
    version_expected: str
    version_actual: str
    deployment_type: DeploymentType
    deployment_arch: DeploymentArch
    bundle_id_expected: str = ""
    download_url: str = ""
    download_url_x86: str = ""
    label_type: str = ""
    team_id: str = ""
    is_dual_arch: bool = False

    @property
    def folder_name(self) -> str:
        return f"{self.label_name}_{self.tracking_id}"

    def with_actual_version(self, version: str) -> "ProcessedAppResults":
        return dataclasses.replace(self, version_actual=str(version or "").strip())
