from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import final

from filelock import Timeout

from title_automation.domain.models.processed_app_results import ProcessedAppResults
from title_automation.domain.models.remote_app_info import RemoteAppInfo
from title_automation.domain.models.results import FinalizeResult
from title_automation.domain.models.title_layout import TitleLayout
from title_automation.domain.protocols.remote_inventory_port import RemoteInventoryPort
from title_automation.domain.protocols.token_provider_port import TokenProviderPort
from title_automation.domain.protocols.upload_marker_port import UploadMarkerPort
from title_automation.domain.services.title_lock import title_lock
from title_automation.domain.services.tmp_workspace import clean_tmp
from title_automation.domain.workflows.confirm_upload import ConfirmUpload


def retained_count(entry_count: int, versions_to_keep: int) -> int:
    return entry_count - max(0, entry_count - versions_to_keep)


@final
class FinalizeUpload:
    def __init__(
        self,
        confirm_upload: ConfirmUpload,
        token_provider: TokenProviderPort,
        inventory: RemoteInventoryPort,
        markers: UploadMarkerPort,
        layout: TitleLayout,
        lock_dir: Path,
        logger: logging.Logger,
        versions_to_keep: int = 2,
        lock_timeout_seconds: float = 0.0,
    ) -> None:
        self._confirm_upload = confirm_upload
        self._token_provider = token_provider
        self._inventory = inventory
        self._markers = markers
        self._layout = layout
        self._lock_dir = lock_dir
        self._logger = logger
        self._versions_to_keep = max(0, int(versions_to_keep))
        self._lock_timeout_seconds = float(lock_timeout_seconds)

    def _discard_new_app(self, token: str, new_app_id: str) -> None:
        if not new_app_id:
            return
        try:
            self._inventory.delete_app(token, new_app_id)
        except Exception as exc:
            self._logger.error("Failed to delete unconfirmed app %s: %s", new_app_id, exc)
            return
        self._logger.info("Deleted unconfirmed app %s", new_app_id)

    def _unassign_older(
        self, token: str, results: ProcessedAppResults, entries: Sequence[RemoteAppInfo]
    ) -> list[str]:
        unassigned: list[str] = []
        for app in entries:
            if not app.is_assigned or app.primary_bundle_version == results.version_actual:
                continue
            self._logger.info(
                "Unassigning older version %s of %s (id: %s)",
                app.primary_bundle_version,
                app.display_name,
                app.id,
            )
            self._inventory.remove_all_assignments(token, app.id)
            unassigned.append(app.id)
        return unassigned

    def _prune_older(self, token: str, entries: Sequence[RemoteAppInfo]) -> list[str]:
        pruned: list[str] = []
        excess = max(0, len(entries) - self._versions_to_keep)
        # Inventory order is oldest first.
        for app in entries[:excess]:
            if app.is_assigned:
                continue
            self._logger.info(
                "Deleting older version %s of %s (id: %s)",
                app.primary_bundle_version,
                app.display_name,
                app.id,
            )
            self._inventory.delete_app(token, app.id)
            pruned.append(app.id)
        return pruned

    def _run(self, results: ProcessedAppResults, new_app_id: str) -> FinalizeResult:
        try:
            token = self._token_provider.get_token()
        except Exception as exc:
            self._logger.error("Authentication failed for %s: %s", results.folder_name, exc)
            tmp_cleaned = clean_tmp(results.label_name, self._layout)
            return FinalizeResult(confirmed=False, tmp_cleaned=tmp_cleaned)

        confirmation = self._confirm_upload(
            results.tracking_id, results.version_actual, token
        )
        if confirmation.timed_out:
            self._logger.error(
                "Upload of %s %s could not be confirmed",
                results.display_name,
                results.version_actual,
            )
            self._discard_new_app(token, new_app_id)
            tmp_cleaned = clean_tmp(results.label_name, self._layout)
            return FinalizeResult(
                confirmed=False,
                entries=confirmation.entries,
                tmp_cleaned=tmp_cleaned,
            )

        entries = confirmation.entries
        unassigned: list[str] = []
        pruned: list[str] = []
        cleanup_failed = False
        try:
            unassigned = self._unassign_older(token, results, entries)
            pruned = self._prune_older(token, entries)
        except Exception as exc:
            self._logger.error("Failed to clean up older versions of %s: %s", results.display_name, exc)
            cleanup_failed = True

        try:
            self._markers.record_count(
                results.label_name,
                results.tracking_id,
                retained_count(len(entries), self._versions_to_keep),
            )
        except OSError as exc:
            self._logger.error("Failed to record upload count for %s: %s", results.folder_name, exc)

        tmp_cleaned = clean_tmp(results.label_name, self._layout)
        self._logger.info(
            "%s %s uploaded (unassigned: %d, pruned: %d)",
            results.display_name,
            results.version_actual,
            len(unassigned),
            len(pruned),
        )
        return FinalizeResult(
            confirmed=True,
            entries=entries,
            unassigned_ids=tuple(unassigned),
            pruned_ids=tuple(pruned),
            cleanup_failed=cleanup_failed,
            tmp_cleaned=tmp_cleaned,
        )

    def __call__(self, results: ProcessedAppResults, new_app_id: str = "") -> FinalizeResult:
        try:
            lock = title_lock(self._lock_dir, results.folder_name)
            _ = lock.acquire(timeout=self._lock_timeout_seconds)
        except Timeout:
            self._logger.warning("Upload finalization of %s skipped: title is busy", results.folder_name)
            return FinalizeResult(confirmed=False, skipped=True)
        except OSError as exc:
            self._logger.error(
                "Upload finalization of %s aborted: cannot lock title: %s", results.folder_name, exc
            )
            return FinalizeResult(confirmed=False)

        try:
            return self._run(results, str(new_app_id or "").strip())
        finally:
            lock.release()
