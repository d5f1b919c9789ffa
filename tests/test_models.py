from __future__ import annotations

from pathlib import Path

import pytest

from title_automation.config.settings_loader import SettingsLoader
from title_automation.config.settings_models import UserSettings
from title_automation.domain.models.app_config import AppConfig
from title_automation.domain.models.errors import GraphApiError
from title_automation.domain.models.processed_app_results import (
    DeploymentArch,
    DeploymentType,
    ProcessedAppResults,
)
from title_automation.domain.models.remote_app_info import RemoteAppInfo
from title_automation.domain.models.results import QueueResult, RemovalOutcome, RemovalStatus
from title_automation.domain.models.title_layout import TitleLayout


def test_remote_app_info_from_graph_given_primary_fields_then_maps_them() -> None:
    info = RemoteAppInfo.from_graph(
        {
            "id": "r1",
            "displayName": "Google Chrome",
            "primaryBundleVersion": "120.0",
            "primaryBundleId": "com.google.Chrome",
            "isAssigned": True,
        }
    )

    assert info == RemoteAppInfo("r1", "Google Chrome", "120.0", "com.google.Chrome", True)


def test_remote_app_info_from_graph_given_lob_fields_then_falls_back() -> None:
    info = RemoteAppInfo.from_graph(
        {"id": "r2", "displayName": "Tool", "buildNumber": "7", "bundleId": "com.example.tool"}
    )

    assert info.primary_bundle_version == "7"
    assert info.primary_bundle_id == "com.example.tool"
    assert info.is_assigned is False


@pytest.mark.parametrize("payload", [{"displayName": "x"}, {"id": "r1"}, {"id": 3, "displayName": "x"}])
def test_remote_app_info_from_graph_given_missing_identity_then_raises(
    payload: dict[str, object],
) -> None:
    with pytest.raises(ValueError, match="missing id/displayName"):
        _ = RemoteAppInfo.from_graph(payload)


@pytest.mark.parametrize(
    ("folder", "expected"),
    [
        ("chrome_abc123", ("chrome", "abc123")),
        ("chrome", None),
        ("google_chrome_abc123", None),
        ("", None),
    ],
)
def test_title_layout_split_folder_name_given_name_then_splits_on_single_underscore(
    folder: str,
    expected: tuple[str, str] | None,
) -> None:
    assert TitleLayout.split_folder_name(folder) == expected


def test_title_layout_paths_given_label_then_follow_managed_and_cache_roots(tmp_path: Path) -> None:
    layout = TitleLayout(managed_titles_dir=tmp_path / "titles", cache_dir=tmp_path / "cache")

    assert layout.upload_marker_path("chrome", "abc") == tmp_path / "titles" / "chrome_abc" / ".uploaded"
    assert layout.x86_descriptor_path("chrome", "abc").name == "chrome_i386.plist"
    assert layout.version_cache_dir("chrome", "1.0") == tmp_path / "cache" / "chrome" / "1.0"
    assert layout.tmp_dir("chrome") == tmp_path / "cache" / "chrome" / "tmp"


def test_graph_api_error_str_given_status_then_appends_http_code() -> None:
    assert str(GraphApiError("Delete failed", status=404)) == "Delete failed (HTTP 404)"
    assert str(GraphApiError("Network down")) == "Network down"


def test_processed_app_results_with_actual_version_then_returns_updated_copy() -> None:
    results = ProcessedAppResults(
        label_name="chrome",
        tracking_id="abc123",
        display_name="Google Chrome",
        version_expected="120.0",
        version_actual="",
        deployment_type=DeploymentType.DMG,
        deployment_arch=DeploymentArch.UNIVERSAL,
    )

    updated = results.with_actual_version(" 120.0 ")

    assert updated.version_actual == "120.0"
    assert results.version_actual == ""
    assert updated.folder_name == "chrome_abc123"
    assert DeploymentType.LOB.file_suffix == "pkg"
    assert DeploymentType.DMG.file_suffix == "dmg"
    assert DeploymentArch.X86_64.tag == "x86_64"


def test_app_config_properties_given_user_overrides_then_prefer_them(tmp_path: Path) -> None:
    paths = SettingsLoader.load(tmp_path / "settings.ini", tmp_path).paths
    defaults = AppConfig(user=UserSettings(), paths=paths)
    custom = AppConfig(
        user=UserSettings(
            upload_poll_attempts=4,
            upload_poll_interval_seconds=0.5,
            app_versions_to_keep=1,
            removal_queue_interval_seconds=10,
        ),
        paths=paths,
    )

    assert (defaults.poll_attempts, defaults.poll_interval_seconds) == (12, 3.0)
    assert (defaults.versions_to_keep, defaults.queue_interval_seconds) == (2, 30)
    assert (custom.poll_attempts, custom.poll_interval_seconds) == (4, 0.5)
    assert (custom.versions_to_keep, custom.queue_interval_seconds) == (1, 10)


def test_result_models_derived_properties() -> None:
    outcome = RemovalOutcome("chrome_abc123", RemovalStatus.PARTIAL_FAILURE, deleted_ids=("a",), failed_ids=("b",))

    assert outcome.attempted == 2
    assert QueueResult(0, 0, 0, 0).has_changes is False
    assert QueueResult(0, 0, 0, 1).has_changes is True
