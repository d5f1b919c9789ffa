from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

import pytest
from filelock import Timeout

from title_automation.application.repositories.upload_marker_repository import (
    UploadMarkerRepository,
)
from title_automation.domain.models.errors import AuthenticationError, GraphApiError, TitleMetadataError
from title_automation.domain.models.processed_app_results import ProcessedAppResults
from title_automation.domain.models.remote_app_info import RemoteAppInfo
from title_automation.domain.models.results import (
    RemovalStage,
    RemovalStatus,
    ScriptResult,
    ScriptStatus,
)
from title_automation.domain.models.title_layout import TitleLayout
from title_automation.domain.workflows import remove_automation as module
from title_automation.domain.workflows.remove_automation import RemoveAutomation


class _FakeLabelScript:
    def __init__(self, status: ScriptStatus = ScriptStatus.SUCCEEDED) -> None:
        self._status = status
        self.calls: list[str] = []

    def run(self, folder_name: str) -> ScriptResult:
        self.calls.append(folder_name)
        exit_code = 0 if self._status is ScriptStatus.SUCCEEDED else 1
        return ScriptResult(self._status, exit_code, "Plist created")


class _FakeMetadata:
    def __init__(self, results: ProcessedAppResults | Exception) -> None:
        self._results = results
        self.calls: list[str] = []

    def load(self, folder_name: str) -> ProcessedAppResults:
        self.calls.append(folder_name)
        if isinstance(self._results, Exception):
            raise self._results
        return self._results


class _FakeTokenProvider:
    def __init__(self, failures: set[int] | None = None) -> None:
        self._failures = failures or set()
        self.calls = 0

    def get_token(self) -> str:
        self.calls += 1
        if self.calls in self._failures:
            raise AuthenticationError("token endpoint unavailable")
        return f"token-{self.calls}"


class _FakeInventory:
    def __init__(
        self,
        entries: list[RemoteAppInfo] | None = None,
        failing_ids: set[str] | None = None,
        query_error: Exception | None = None,
    ) -> None:
        self._entries = entries or []
        self._failing_ids = failing_ids or set()
        self._query_error = query_error
        self.query_calls: list[str] = []
        self.delete_calls: list[tuple[str, str]] = []

    def find_apps_by_tracking_id(self, token: str, tracking_id: str) -> list[RemoteAppInfo]:
        _ = token
        self.query_calls.append(tracking_id)
        if self._query_error is not None:
            raise self._query_error
        return list(self._entries)

    def delete_app(self, token: str, app_id: str) -> None:
        self.delete_calls.append((token, app_id))
        if app_id in self._failing_ids:
            raise GraphApiError("delete failed", status=500)

    def remove_all_assignments(self, token: str, app_id: str) -> None:
        _ = (token, app_id)


class _TimeoutLock:
    def acquire(self, timeout: float | None = None) -> object:
        _ = timeout
        raise Timeout("busy")

    def release(self) -> None:
        return None


def _app(app_id: str, version: str = "120.0") -> RemoteAppInfo:
    return RemoteAppInfo(id=app_id, display_name="Google Chrome", primary_bundle_version=version)


def _build(
    temp_workspace: Path,
    layout: TitleLayout,
    results: ProcessedAppResults | Exception,
    *,
    script: _FakeLabelScript | None = None,
    tokens: _FakeTokenProvider | None = None,
    inventory: _FakeInventory | None = None,
) -> tuple[RemoveAutomation, _FakeLabelScript, _FakeTokenProvider, _FakeInventory]:
    script = script or _FakeLabelScript()
    tokens = tokens or _FakeTokenProvider()
    inventory = inventory or _FakeInventory()
    remove = RemoveAutomation(
        label_script=script,
        metadata=_FakeMetadata(results),
        token_provider=tokens,
        inventory=inventory,
        markers=UploadMarkerRepository(layout),
        lock_dir=temp_workspace / "data" / "internal" / "locks",
        logger=logging.getLogger("test.remove_automation"),
    )
    return remove, script, tokens, inventory


def _write_marker(layout: TitleLayout) -> Path:
    marker = layout.upload_marker_path("chrome", "abc123")
    marker.parent.mkdir(parents=True, exist_ok=True)
    _ = marker.write_text("2", encoding="utf-8")
    return marker


def test_remove_automation_given_r1_fails_and_r2_succeeds_then_reports_partial_and_reconciles_marker(
    temp_workspace: Path,
    layout: TitleLayout,
    chrome_results: ProcessedAppResults,
    caplog: pytest.LogCaptureFixture,
) -> None:
    marker = _write_marker(layout)
    inventory = _FakeInventory([_app("r1"), _app("r2")], failing_ids={"r1"})
    remove, _, _, _ = _build(temp_workspace, layout, chrome_results, inventory=inventory)

    with caplog.at_level(logging.INFO, logger="test.remove_automation"):
        outcome = remove("chrome_abc123")

    assert outcome.status is RemovalStatus.PARTIAL_FAILURE
    assert outcome.failed_ids == ("r1",)
    assert outcome.deleted_ids == ("r2",)
    assert outcome.marker_removed is True
    assert not marker.exists()
    assert [app_id for _, app_id in inventory.delete_calls] == ["r1", "r2"]
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "r1" in errors[0].getMessage()
    assert "Removed app id r2" in caplog.text


@pytest.mark.parametrize("failing", [set(), {"a"}, {"a", "b", "c"}])
def test_remove_automation_given_n_entries_then_attempts_exactly_n_deletes(
    temp_workspace: Path,
    layout: TitleLayout,
    chrome_results: ProcessedAppResults,
    failing: set[str],
) -> None:
    inventory = _FakeInventory([_app("a"), _app("b"), _app("c")], failing_ids=failing)
    remove, _, tokens, _ = _build(temp_workspace, layout, chrome_results, inventory=inventory)

    outcome = remove("chrome_abc123")

    assert len(inventory.delete_calls) == 3
    assert outcome.attempted == 3
    assert set(outcome.failed_ids) == failing
    assert tokens.calls == 4


def test_remove_automation_given_reauth_fails_for_one_entry_then_counts_it_failed(
    temp_workspace: Path,
    layout: TitleLayout,
    chrome_results: ProcessedAppResults,
) -> None:
    inventory = _FakeInventory([_app("r1"), _app("r2")])
    tokens = _FakeTokenProvider(failures={2})
    remove, _, _, _ = _build(
        temp_workspace, layout, chrome_results, tokens=tokens, inventory=inventory
    )

    outcome = remove("chrome_abc123")

    assert outcome.status is RemovalStatus.PARTIAL_FAILURE
    assert outcome.failed_ids == ("r1",)
    assert outcome.deleted_ids == ("r2",)
    assert inventory.delete_calls == [("token-3", "r2")]


def test_remove_automation_given_no_marker_then_succeeds_without_touching_filesystem(
    temp_workspace: Path,
    layout: TitleLayout,
    chrome_results: ProcessedAppResults,
) -> None:
    remove, _, _, inventory = _build(
        temp_workspace, layout, chrome_results, inventory=_FakeInventory([_app("r1")])
    )

    outcome = remove("chrome_abc123")

    assert outcome.status is RemovalStatus.SUCCEEDED
    assert outcome.deleted_ids == ("r1",)
    assert outcome.marker_removed is False
    assert inventory.query_calls == ["abc123"]


def test_remove_automation_given_no_remote_entries_then_succeeds_and_removes_marker(
    temp_workspace: Path,
    layout: TitleLayout,
    chrome_results: ProcessedAppResults,
) -> None:
    marker = _write_marker(layout)
    remove, _, _, inventory = _build(temp_workspace, layout, chrome_results)

    outcome = remove("chrome_abc123")

    assert outcome.status is RemovalStatus.SUCCEEDED
    assert outcome.attempted == 0
    assert inventory.delete_calls == []
    assert not marker.exists()


def test_remove_automation_given_script_failure_then_fatal_at_regenerate_without_later_stages(
    temp_workspace: Path,
    layout: TitleLayout,
    chrome_results: ProcessedAppResults,
) -> None:
    marker = _write_marker(layout)
    remove, script, tokens, inventory = _build(
        temp_workspace,
        layout,
        chrome_results,
        script=_FakeLabelScript(ScriptStatus.NOT_FOUND),
    )

    outcome = remove("chrome_abc123")

    assert outcome.status is RemovalStatus.FATAL_ERROR
    assert outcome.stage is RemovalStage.REGENERATE
    assert "not_found" in outcome.cause
    assert script.calls == ["chrome_abc123"]
    assert tokens.calls == 0
    assert inventory.query_calls == []
    assert marker.exists()


def test_remove_automation_given_metadata_error_then_fatal_at_extract(
    temp_workspace: Path,
    layout: TitleLayout,
) -> None:
    remove, _, tokens, _ = _build(
        temp_workspace, layout, TitleMetadataError("Critical key name is missing")
    )

    outcome = remove("chrome_abc123")

    assert outcome.status is RemovalStatus.FATAL_ERROR
    assert outcome.stage is RemovalStage.EXTRACT
    assert "Critical key name" in outcome.cause
    assert tokens.calls == 0


def test_remove_automation_given_auth_failure_then_fatal_at_authenticate(
    temp_workspace: Path,
    layout: TitleLayout,
    chrome_results: ProcessedAppResults,
) -> None:
    remove, _, _, inventory = _build(
        temp_workspace,
        layout,
        chrome_results,
        tokens=_FakeTokenProvider(failures={1}),
    )

    outcome = remove("chrome_abc123")

    assert outcome.status is RemovalStatus.FATAL_ERROR
    assert outcome.stage is RemovalStage.AUTHENTICATE
    assert inventory.query_calls == []


def test_remove_automation_given_query_failure_then_fatal_at_query_and_marker_kept(
    temp_workspace: Path,
    layout: TitleLayout,
    chrome_results: ProcessedAppResults,
) -> None:
    marker = _write_marker(layout)
    inventory = _FakeInventory(query_error=GraphApiError("bad gateway", status=502))
    remove, _, _, _ = _build(temp_workspace, layout, chrome_results, inventory=inventory)

    outcome = remove("chrome_abc123")

    assert outcome.status is RemovalStatus.FATAL_ERROR
    assert outcome.stage is RemovalStage.QUERY
    assert outcome.cause == "bad gateway (HTTP 502)"
    assert inventory.delete_calls == []
    assert marker.exists()


def test_remove_automation_given_busy_title_lock_then_skipped_without_running_script(
    temp_workspace: Path,
    layout: TitleLayout,
    chrome_results: ProcessedAppResults,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(module, "title_lock", lambda _lock_dir, _folder: _TimeoutLock())
    remove, script, _, _ = _build(temp_workspace, layout, chrome_results)

    outcome = remove("chrome_abc123")

    assert outcome.status is RemovalStatus.SKIPPED
    assert script.calls == []


def test_remove_automation_given_blank_tracking_id_then_fatal_at_extract_before_auth(
    temp_workspace: Path,
    layout: TitleLayout,
    chrome_results: ProcessedAppResults,
) -> None:
    marker = _write_marker(layout)
    untracked = dataclasses.replace(chrome_results, tracking_id="")
    remove, _, tokens, inventory = _build(temp_workspace, layout, untracked)

    outcome = remove("chrome_abc123")

    assert outcome.status is RemovalStatus.FATAL_ERROR
    assert outcome.stage is RemovalStage.EXTRACT
    assert outcome.cause == "tracking id is missing"
    assert tokens.calls == 0
    assert inventory.query_calls == []
    assert marker.exists()


def test_remove_automation_given_lock_dir_is_a_file_then_fatal_without_raising(
    temp_workspace: Path,
    layout: TitleLayout,
    chrome_results: ProcessedAppResults,
) -> None:
    blocker = temp_workspace / "data" / "internal" / "locks"
    blocker.parent.mkdir(parents=True, exist_ok=True)
    _ = blocker.write_text("not a directory", encoding="utf-8")
    remove, script, tokens, _ = _build(temp_workspace, layout, chrome_results)

    outcome = remove("chrome_abc123")

    assert outcome.status is RemovalStatus.FATAL_ERROR
    assert outcome.stage is None
    assert outcome.cause != ""
    assert script.calls == []
    assert tokens.calls == 0
