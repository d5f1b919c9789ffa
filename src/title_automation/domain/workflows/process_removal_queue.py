from __future__ import annotations

import logging
import traceback
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, final

from filelock import FileLock, Timeout

from title_automation.domain.models.results import QueueResult, RemovalOutcome, RemovalStatus
from title_automation.domain.models.title_layout import TitleLayout

TRIGGER_SUFFIX = ".trigger"


@final
class ProcessRemovalQueue:
    def __init__(
        self,
        remove_automation: Callable[[str], RemovalOutcome],
        queue_dir: Path,
        layout: TitleLayout,
        lock_path: Path,
        logger: logging.Logger,
        worker_count: int = 1,
        lock_timeout_seconds: float = 0.0,
    ) -> None:
        self._remove_automation = remove_automation
        self._queue_dir = queue_dir
        self._layout = layout
        self._lock = FileLock(str(lock_path))
        self._lock_timeout_seconds = float(lock_timeout_seconds)
        self._logger = logger
        self._worker_count = max(1, int(worker_count))

    def _collect_triggers(self) -> list[Path]:
        if not self._queue_dir.is_dir():
            return []

        triggers: list[Path] = []
        for path in sorted(self._queue_dir.iterdir()):
            if path.is_file() and path.suffix == TRIGGER_SUFFIX:
                triggers.append(path)
                continue
            if path.is_dir():
                self._logger.warning("Ignoring unexpected directory in removal queue: %s", path.name)
                continue
            self._logger.warning("Removing unexpected file from removal queue: %s", path.name)
            try:
                path.unlink()
            except OSError as exc:
                self._logger.error("Failed to remove %s: %s", path, exc)
        return triggers

    def _discard_trigger(self, trigger: Path) -> None:
        try:
            trigger.unlink(missing_ok=True)
        except OSError as exc:
            self._logger.error("Failed to remove trigger %s: %s", trigger.name, exc)

    def _run_one(self, folder_name: str) -> RemovalOutcome:
        try:
            return self._remove_automation(folder_name)
        except Exception:
            self._logger.error(
                "Unexpected removal worker failure for %s\n%s",
                folder_name,
                traceback.format_exc(),
            )
            return RemovalOutcome(
                folder_name=folder_name,
                status=RemovalStatus.FATAL_ERROR,
                cause="unexpected worker failure",
            )

    def _run_all(self, folder_names: list[str]) -> list[RemovalOutcome]:
        if self._worker_count <= 1 or len(folder_names) == 1:
            return [self._run_one(name) for name in folder_names]

        outcomes: list[RemovalOutcome] = []
        with ThreadPoolExecutor(max_workers=self._worker_count) as executor:
            futures = [executor.submit(self._run_one, name) for name in folder_names]
            for future in as_completed(futures):
                outcomes.append(future.result())
        return outcomes

    def __call__(self) -> QueueResult:
        try:
            _ = self._lock.acquire(timeout=self._lock_timeout_seconds)
        except Timeout:
            self._logger.warning("Removal queue skipped: another cycle is still running")
            return QueueResult(0, 0, 0, 0)

        try:
            skipped = 0
            pending: dict[str, Path] = {}
            for trigger in self._collect_triggers():
                folder_name = trigger.stem
                if not (self._layout.managed_titles_dir / folder_name).is_dir():
                    self._logger.warning(
                        "Skipping removal of %s: managed title folder does not exist",
                        folder_name,
                    )
                    self._discard_trigger(trigger)
                    skipped += 1
                    continue
                pending[folder_name] = trigger

            outcomes = self._run_all(list(pending))

            succeeded = 0
            failed = 0
            for outcome in outcomes:
                if outcome.status is RemovalStatus.SKIPPED:
                    skipped += 1
                    continue
                self._discard_trigger(pending[outcome.folder_name])
                if outcome.status is RemovalStatus.SUCCEEDED:
                    succeeded += 1
                else:
                    failed += 1

            result = QueueResult(
                processed=succeeded + failed,
                succeeded=succeeded,
                failed=failed,
                skipped=skipped,
            )
            log_fn = self._logger.info if result.has_changes else self._logger.debug
            log_fn(
                "Removal queue completed: processed: %d, succeeded: %d, failed: %d, skipped: %d",
                result.processed,
                result.succeeded,
                result.failed,
                result.skipped,
            )
            return result
        finally:
            self._lock.release()
