from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Callable, final

from title_automation.domain.models.remote_app_info import RemoteAppInfo
from title_automation.domain.models.results import UploadConfirmation
from title_automation.domain.protocols.remote_inventory_port import RemoteInventoryQueryPort


def is_version_uploaded(entries: Sequence[RemoteAppInfo], version: str) -> bool:
    return any(entry.primary_bundle_version == version for entry in entries)


@final
class ConfirmUpload:
    def __init__(
        self,
        inventory: RemoteInventoryQueryPort,
        logger: logging.Logger,
        max_attempts: int = 12,
        interval_seconds: float = 3.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._inventory = inventory
        self._logger = logger
        self._max_attempts = max(1, int(max_attempts))
        self._interval_seconds = max(0.0, float(interval_seconds))
        self._sleep = sleep

    def __call__(self, tracking_id: str, expected_version: str, token: str) -> UploadConfirmation:
        last_seen: tuple[RemoteAppInfo, ...] = tuple()
        self._logger.info("Polling for upload status of %s...", tracking_id)

        for attempt in range(1, self._max_attempts + 1):
            try:
                entries = tuple(self._inventory.find_apps_by_tracking_id(token, tracking_id))
            except Exception as exc:
                self._logger.error(
                    "Upload status query failed for %s (attempt %d): %s",
                    tracking_id,
                    attempt,
                    exc,
                )
            else:
                last_seen = entries
                if is_version_uploaded(entries, expected_version):
                    self._logger.info(
                        "Version %s appeared in the inventory after %d attempt(s)",
                        expected_version,
                        attempt,
                    )
                    return UploadConfirmation(timed_out=False, entries=entries, attempts=attempt)
                self._logger.info(
                    "Waiting for version %s to appear in the inventory (attempt %d)",
                    expected_version,
                    attempt,
                )

            if attempt < self._max_attempts:
                self._sleep(self._interval_seconds)

        seen_versions = ", ".join(entry.primary_bundle_version for entry in last_seen) or "none"
        self._logger.warning(
            "Version %s not confirmed after %d attempts; last seen versions: %s",
            expected_version,
            self._max_attempts,
            seen_versions,
        )
        return UploadConfirmation(timed_out=True, entries=last_seen, attempts=self._max_attempts)
