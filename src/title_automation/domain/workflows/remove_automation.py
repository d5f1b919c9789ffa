from __future__ import annotations

import logging
from pathlib import Path
from typing import final

from filelock import Timeout

from title_automation.domain.models.processed_app_results import ProcessedAppResults
from title_automation.domain.models.remote_app_info import RemoteAppInfo
from title_automation.domain.models.results import (
    RemovalOutcome,
    RemovalStage,
    RemovalStatus,
)
from title_automation.domain.protocols.label_script_port import LabelScriptPort
from title_automation.domain.protocols.remote_inventory_port import RemoteInventoryPort
from title_automation.domain.protocols.title_metadata_port import TitleMetadataPort
from title_automation.domain.protocols.token_provider_port import TokenProviderPort
from title_automation.domain.protocols.upload_marker_port import UploadMarkerPort
from title_automation.domain.services.title_lock import title_lock


class _StageFailed(Exception):
    def __init__(self, stage: RemovalStage, cause: str) -> None:
        super().__init__(cause)
        self.stage = stage
        self.cause = cause


@final
class RemoveAutomation:
    """Decommission every remote entry of one managed title.

    Stages run in order: regenerate metadata, extract results, authenticate,
    query the inventory, delete each match, then drop the local upload marker.
    The first four stages are fatal. A failed delete is logged and the loop
    moves on to the next entry.
    """

    def __init__(
        self,
        label_script: LabelScriptPort,
        metadata: TitleMetadataPort,
        token_provider: TokenProviderPort,
        inventory: RemoteInventoryPort,
        markers: UploadMarkerPort,
        lock_dir: Path,
        logger: logging.Logger,
        lock_timeout_seconds: float = 0.0,
    ) -> None:
        self._label_script = label_script
        self._metadata = metadata
        self._token_provider = token_provider
        self._inventory = inventory
        self._markers = markers
        self._lock_dir = lock_dir
        self._logger = logger
        self._lock_timeout_seconds = float(lock_timeout_seconds)

    def _regenerate(self, folder_name: str) -> None:
        result = self._label_script.run(folder_name)
        if not result.succeeded:
            raise _StageFailed(
                RemovalStage.REGENERATE,
                f"label script {result.status.value} (exit code {result.exit_code}): {result.output}",
            )

    def _extract(self, folder_name: str) -> ProcessedAppResults:
        try:
            results = self._metadata.load(folder_name)
        except Exception as exc:
            raise _StageFailed(RemovalStage.EXTRACT, str(exc)) from exc
        if not str(results.tracking_id or "").strip():
            raise _StageFailed(RemovalStage.EXTRACT, "tracking id is missing")
        return results

    def _authenticate(self) -> str:
        try:
            return self._token_provider.get_token()
        except Exception as exc:
            raise _StageFailed(RemovalStage.AUTHENTICATE, str(exc)) from exc

    def _query(self, token: str, tracking_id: str) -> list[RemoteAppInfo]:
        try:
            return list(self._inventory.find_apps_by_tracking_id(token, tracking_id))
        except Exception as exc:
            raise _StageFailed(RemovalStage.QUERY, str(exc)) from exc

    def _delete_all(
        self, results: ProcessedAppResults, entries: list[RemoteAppInfo]
    ) -> tuple[tuple[str, ...], tuple[str, ...]]:
        deleted: list[str] = []
        failed: list[str] = []
        for app in entries:
            self._logger.info(
                "Removing %s version %s (id: %s)",
                app.display_name,
                app.primary_bundle_version,
                app.id,
            )
            try:
                # Token is fetched per entry; the provider decides whether it is still fresh.
                token = self._token_provider.get_token()
                self._inventory.delete_app(token, app.id)
            except Exception as exc:
                self._logger.error(
                    "Error removing %s item with app id %s: %s",
                    results.display_name,
                    app.id,
                    exc,
                )
                failed.append(app.id)
                continue
            self._logger.info("Removed app id %s", app.id)
            deleted.append(app.id)
        return tuple(deleted), tuple(failed)

    def _reconcile_marker(self, results: ProcessedAppResults) -> bool:
        try:
            removed = self._markers.remove(results.label_name, results.tracking_id)
        except OSError as exc:
            self._logger.error(
                "Failed to remove upload marker for %s: %s", results.folder_name, exc
            )
            return False
        if removed:
            self._logger.info("Removed upload tracking file for %s", results.folder_name)
        return removed

    def _run(self, folder_name: str) -> RemovalOutcome:
        self._regenerate(folder_name)
        results = self._extract(folder_name)
        self._logger.info(
            "Extracted %s (label: %s, tracking id: %s, version: %s)",
            results.display_name,
            results.label_name,
            results.tracking_id,
            results.version_expected,
        )

        token = self._authenticate()
        entries = self._query(token, results.tracking_id)
        self._logger.info(
            "Found %d app(s) matching tracking id %s", len(entries), results.tracking_id
        )

        deleted, failed = self._delete_all(results, entries)
        marker_removed = self._reconcile_marker(results)

        status = RemovalStatus.PARTIAL_FAILURE if failed else RemovalStatus.SUCCEEDED
        return RemovalOutcome(
            folder_name=folder_name,
            status=status,
            cause=f"{len(failed)} of {len(entries)} delete(s) failed" if failed else "",
            deleted_ids=deleted,
            failed_ids=failed,
            marker_removed=marker_removed,
        )

    def __call__(self, folder_name: str) -> RemovalOutcome:
        try:
            lock = title_lock(self._lock_dir, folder_name)
            _ = lock.acquire(timeout=self._lock_timeout_seconds)
        except Timeout:
            self._logger.warning("Removal of %s skipped: title is busy", folder_name)
            return RemovalOutcome(folder_name=folder_name, status=RemovalStatus.SKIPPED)
        except OSError as exc:
            self._logger.error("Removal of %s aborted: cannot lock title: %s", folder_name, exc)
            return RemovalOutcome(
                folder_name=folder_name,
                status=RemovalStatus.FATAL_ERROR,
                cause=str(exc),
            )

        self._logger.info("Start removal of automations for %s", folder_name)
        try:
            outcome = self._run(folder_name)
        except _StageFailed as failure:
            self._logger.error(
                "Removal of %s aborted at %s: %s",
                folder_name,
                failure.stage.value,
                failure.cause,
            )
            return RemovalOutcome(
                folder_name=folder_name,
                status=RemovalStatus.FATAL_ERROR,
                stage=failure.stage,
                cause=failure.cause,
            )
        finally:
            lock.release()

        log_fn = self._logger.info if outcome.status is RemovalStatus.SUCCEEDED else self._logger.warning
        log_fn(
            "Removal of %s completed: deleted: %d, failed: %d, marker removed: %s",
            folder_name,
            len(outcome.deleted_ids),
            len(outcome.failed_ids),
            outcome.marker_removed,
        )
        return outcome
