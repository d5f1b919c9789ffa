from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RemoteAppInfo:
    id: str
    display_name: str
    primary_bundle_version: str
    primary_bundle_id: str = ""
    is_assigned: bool = False

    @classmethod
    def from_graph(cls, payload: Mapping[str, object]) -> "RemoteAppInfo":
        app_id = payload.get("id")
        display_name = payload.get("displayName")
        if not isinstance(app_id, str) or not isinstance(display_name, str):
            raise ValueError("mobileApp item is missing id/displayName")

        # Line-of-business apps carry bundleId/buildNumber instead of the primary fields.
        version = payload.get("primaryBundleVersion") or payload.get("buildNumber") or ""
        bundle_id = payload.get("primaryBundleId") or payload.get("bundleId") or ""
        return cls(
            id=app_id,
            display_name=display_name,
            primary_bundle_version=str(version),
            primary_bundle_id=str(bundle_id),
            is_assigned=bool(payload.get("isAssigned", False)),
        )
